"""Decoding of invoice markup into a loosely-typed tree.

The tree mirrors the document the way a generic XML-to-dict converter does:
elements become dict keys, repeated siblings become lists, leaf elements
become their stripped text, attributes are kept under ``@_name`` keys and
the text of attribute-carrying elements under ``#text``. Child keys use the
local element name; the top-level key keeps the prefix written in the
document so the root can be resolved across naming variants.

Parsing uses lxml with entity resolution and network access disabled:
https://lxml.de/parsing.html#parser-options
"""

import logging
from typing import Any

from lxml import etree

from services.einvoice.errors import INVALID_XML, MISSING_ROOT, InvoiceParseError

logger = logging.getLogger(__name__)

ROOT_ELEMENT = "FatturaElettronica"

# Known spellings of the root element, tried in order
ROOT_CANDIDATES: tuple[str, ...] = (
    ROOT_ELEMENT,
    f"p:{ROOT_ELEMENT}",
    f"ns0:{ROOT_ELEMENT}",
    f"ns1:{ROOT_ELEMENT}",
    f"ns2:{ROOT_ELEMENT}",
    f"ns3:{ROOT_ELEMENT}",
    f"n2:{ROOT_ELEMENT}",
    f"b:{ROOT_ELEMENT}",
)

ATTRIBUTE_PREFIX = "@_"
TEXT_KEY = "#text"

Tree = dict[str, Any]


def _make_parser(encoding: str | None = None) -> etree.XMLParser:
    return etree.XMLParser(
        encoding=encoding,
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=False,
    )


def _local_name(tag: str) -> str:
    return etree.QName(tag).localname


def _qualified_name(element: etree._Element) -> str:
    local = _local_name(element.tag)
    return f"{element.prefix}:{local}" if element.prefix else local


def _element_to_node(element: etree._Element) -> Any:
    """Convert one element into a tree node."""
    node: Tree = {}

    for name, value in element.attrib.items():
        node[f"{ATTRIBUTE_PREFIX}{_local_name(name)}"] = value

    for child in element:
        if not isinstance(child.tag, str):
            continue
        key = _local_name(child.tag)
        value = _element_to_node(child)
        if key in node:
            existing = node[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[key] = [existing, value]
        else:
            node[key] = value

    text = (element.text or "").strip()
    if not node:
        return text
    if text:
        node[TEXT_KEY] = text
    return node


def decode_document(raw: str | bytes, file_name: str | None = None) -> Tree:
    """Parse raw markup into a tree with a single top-level key.

    Args:
        raw: Document text, or bytes honoring the document's declared encoding
        file_name: Original file name, used for diagnostics only

    Returns:
        Tree keyed by the (possibly prefixed) root element name

    Raises:
        InvoiceParseError: With code INVALID_XML if the markup is malformed
    """
    if isinstance(raw, str):
        # str input is already decoded; ignore any encoding declaration
        try:
            data = raw.lstrip("\ufeff").encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvoiceParseError(
                INVALID_XML, f"Malformed XML: unencodable character: {e}", path="root"
            ) from e
        parser = _make_parser("utf-8")
    else:
        data = raw
        parser = _make_parser()

    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        logger.debug(f"Malformed markup in {file_name or '<upload>'}: {e}")
        raise InvoiceParseError(INVALID_XML, f"Malformed XML: {e}", path="root") from e

    if root is None:
        raise InvoiceParseError(INVALID_XML, "Malformed XML: empty document", path="root")

    return {_qualified_name(root): _element_to_node(root)}


def resolve_root(tree: Tree) -> Tree | None:
    """Locate the invoice root node inside a decoded tree.

    Tries the known root spellings, then any key naming the invoice root
    under an unexpected prefix, then the sole top-level key.

    Returns:
        The root node, or None if no object-valued root can be found
    """
    for name in ROOT_CANDIDATES:
        node = tree.get(name)
        if isinstance(node, dict) and node:
            return node

    for key, node in tree.items():
        if ROOT_ELEMENT in key and isinstance(node, dict) and node:
            return node

    if len(tree) == 1:
        node = next(iter(tree.values()))
        if isinstance(node, dict) and node:
            return node

    return None


def decode_root(raw: str | bytes, file_name: str | None = None) -> tuple[str, Tree]:
    """Decode a document and resolve its root.

    Returns:
        Tuple of (top-level key as written, root node)

    Raises:
        InvoiceParseError: INVALID_XML for malformed markup, MISSING_ROOT if
            no root can be resolved
    """
    tree = decode_document(raw, file_name)
    root = resolve_root(tree)
    if root is None:
        raise InvoiceParseError(
            MISSING_ROOT,
            f"Root element {ROOT_ELEMENT} not found in document",
            path=ROOT_ELEMENT,
        )
    return next(iter(tree)), root
