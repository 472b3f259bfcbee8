"""
XMLTV guide rendering

Builds the guide document for a Snapshot: every <channel> first, then every
<programme>, as the XMLTV DTD requires.
"""
import logging

from lxml import etree # type: ignore

from stirr_service.models import ChannelStatus, Program, Snapshot
from stirr_service.utils.text import strip_invalid_xml_chars as _xml_safe
from stirr_service.utils.timestamps import format_xmltv_time

logger = logging.getLogger(__name__)

XMLTV_DOCTYPE = '<!DOCTYPE tv SYSTEM "xmltv.dtd">'
ICON_WIDTH = 340
ICON_HEIGHT = 255


def render_guide(
    snapshot: Snapshot,
    generator_name: str | None = None,
    generator_url: str | None = None
) -> bytes:
    """
    Render a snapshot as an XMLTV document

    Args:
        snapshot: Snapshot to render
        generator_name: Value for the generator-info-name attribute
        generator_url: Value for the generator-info-url attribute

    Returns:
        UTF-8 encoded document with XML declaration and DOCTYPE
    """
    root = etree.Element("tv")
    if generator_name:
        root.set("generator-info-name", _xml_safe(generator_name))
    if generator_url:
        root.set("generator-info-url", _xml_safe(generator_url))

    for channel in snapshot.channels:
        root.append(_channel_element(channel))

    programme_count = 0
    for channel, program in snapshot.iter_programs():
        root.append(_programme_element(channel, program))
        programme_count += 1

    logger.debug("Rendered guide: %s channels, %s programmes", len(snapshot.channels), programme_count)

    return etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        doctype=XMLTV_DOCTYPE,
        pretty_print=True,
    )


def _channel_element(channel: ChannelStatus) -> etree._Element:
    """Build <channel> with title and number as display names"""
    element = etree.Element("channel", id=_xml_safe(channel.id))
    etree.SubElement(element, "display-name").text = _xml_safe(channel.title)
    etree.SubElement(element, "display-name").text = str(channel.number)

    if channel.logo_url:
        etree.SubElement(
            element,
            "icon",
            src=_xml_safe(channel.logo_url),
            width=str(ICON_WIDTH),
            height=str(ICON_HEIGHT),
        )

    return element


def _programme_element(channel: ChannelStatus, program: Program) -> etree._Element:
    """Build <programme> referencing the owning channel's derived id"""
    element = etree.Element(
        "programme",
        start=format_xmltv_time(program.start),
        stop=format_xmltv_time(program.stop),
        channel=_xml_safe(channel.id),
    )

    _text_element(element, "title", program.title, program.title_lang)
    if program.description:
        _text_element(element, "desc", program.description, program.description_lang)
    for category in program.categories:
        _text_element(element, "category", category, program.category_lang)

    return element


def _text_element(parent: etree._Element, tag: str, text: str, lang: str | None) -> None:
    child = etree.SubElement(parent, tag)
    if lang:
        child.set("lang", _xml_safe(lang))
    child.text = _xml_safe(text)
