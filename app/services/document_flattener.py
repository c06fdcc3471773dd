# services/document_flattener.py
"""
Answer document parsing and flattening.

MTurk returns each assignment's answers as QuestionFormAnswers XML:

    <QuestionFormAnswers xmlns="...">
      <Answer>
        <QuestionIdentifier>sentiment</QuestionIdentifier>
        <FreeText>positive</FreeText>
      </Answer>
    </QuestionFormAnswers>

`parse_answer_xml` turns that into the multi-valued tree generic XML parsers
produce (every child wrapped in a list), and `flatten` collapses the tree into
plain JSON-like values.
"""

from typing import Any, Dict, List, Optional

from lxml import etree

from core.exceptions import ParseError

ANSWER_VALUE_FIELDS = ("FreeText", "SelectionIdentifier", "OtherSelectionText")

# MTurk declares encoding="ASCII" but answers carry any Unicode text
_parser = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    remove_comments=True,
    encoding="utf-8",
)


def flatten(node: Any) -> Any:
    """
    Collapse a multi-valued tree.

    Strings pass through, single-element lists are unwrapped, longer lists keep
    their order and mappings are flattened per key.
    """
    if isinstance(node, str):
        return node
    if isinstance(node, (list, tuple)):
        if len(node) <= 1:
            return flatten(node[0]) if node else None
        return [flatten(child) for child in node]
    if isinstance(node, dict):
        return {key: flatten(value) for key, value in node.items()}
    return node


def _element_to_tree(element) -> Any:
    children: Dict[str, List[Any]] = {}
    for child in element:
        if not isinstance(child.tag, str):
            # processing instructions
            continue
        name = etree.QName(child).localname
        children.setdefault(name, []).append(_element_to_tree(child))

    text = element.text or ""
    attributes = {etree.QName(k).localname: v for k, v in element.attrib.items()}

    if not children and not attributes:
        return text

    node: Dict[str, Any] = {}
    if attributes:
        node["$"] = attributes
    if text.strip():
        node["_"] = text.strip()
    node.update(children)
    return node


def parse_answer_xml(xml_text: str) -> Dict[str, List[Any]]:
    """
    Parse XML into {root_name: [tree]}.

    Raises:
        ParseError: if the document is not well-formed XML
    """
    if not xml_text or not xml_text.strip():
        raise ParseError("Answer document is empty")
    try:
        root = etree.fromstring(xml_text.encode("utf-8"), parser=_parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed answer document: {e}") from e
    return {etree.QName(root).localname: [_element_to_tree(root)]}


def _answer_value(answer: Dict[str, Any]) -> Optional[Any]:
    for field in ANSWER_VALUE_FIELDS:
        value = answer.get(field)
        if value not in (None, "", []):
            return value
    return None


def extract_answers(xml_text: str) -> Dict[str, Any]:
    """Map each QuestionIdentifier to its FreeText, SelectionIdentifier or OtherSelectionText."""
    doc = flatten(parse_answer_xml(xml_text))
    form = doc.get("QuestionFormAnswers")
    if not isinstance(form, dict):
        raise ParseError("Answer document has no QuestionFormAnswers root")

    answers = form.get("Answer") or []
    if isinstance(answers, dict):
        answers = [answers]

    message: Dict[str, Any] = {}
    for answer in answers:
        if not isinstance(answer, dict) or not answer.get("QuestionIdentifier"):
            continue
        # TODO: support FileUploadKey answers once uploads are enabled on a layout
        value = _answer_value(answer)
        if value is not None:
            message[answer["QuestionIdentifier"]] = value
    return message
