"""
Text sanitizing for provider strings

Provider JSON can carry characters that are legal in a Python str but not in
an XML document or a UTF-8 body: lone surrogates from escaped UTF-16 halves,
C0 controls, and the U+FFFE/U+FFFF noncharacters.
"""
import re


# Everything outside the XML 1.0 Char production, including lone surrogates
_INVALID_XML_CHARS = re.compile(
    "[^\t\n\r -%s%s-%s%s-%s]" % (chr(0xD7FF), chr(0xE000), chr(0xFFFD), chr(0x10000), chr(0x10FFFF))
)


def strip_invalid_xml_chars(text: str) -> str:
    """Remove characters that cannot appear in XML or be encoded as UTF-8."""
    return _INVALID_XML_CHARS.sub("", text)
