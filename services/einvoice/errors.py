"""Error codes and the exception raised by strict invoice parsing."""

# Blocking errors
INVALID_XML = "INVALID_XML"
MISSING_ROOT = "MISSING_ROOT"
MISSING_VAT = "MISSING_VAT"
MISSING_DOCUMENT_NUMBER = "MISSING_DOCUMENT_NUMBER"
MISSING_DATE = "MISSING_DATE"

# Non-blocking warnings
UNKNOWN_DOCUMENT_TYPE = "UNKNOWN_DOCUMENT_TYPE"
EMPTY_LINE_ITEMS = "EMPTY_LINE_ITEMS"
MISSING_TOTAL_AMOUNT = "MISSING_TOTAL_AMOUNT"
NAMESPACE_PREFIXED_ROOT = "NAMESPACE_PREFIXED_ROOT"
MULTIPLE_BODIES = "MULTIPLE_BODIES"
VAT_NON_STANDARD_LENGTH = "VAT_NON_STANDARD_LENGTH"
NON_ISO_DATE = "NON_ISO_DATE"
UNKNOWN_PAYMENT_METHOD = "UNKNOWN_PAYMENT_METHOD"
MISSING_NATURE_CODE = "MISSING_NATURE_CODE"


class InvoiceParseError(ValueError):
    """Raised by strict parsing on the first blocking defect.

    Attributes:
        code: One of the blocking error codes above
        message: Human-readable description
        path: Element path the error refers to
    """

    def __init__(self, code: str, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.path = path

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
