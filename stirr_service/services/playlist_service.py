"""
M3U playlist rendering

Pure functions over a Snapshot; one stanza per channel in snapshot order.
"""
from stirr_service.models import ChannelStatus, Snapshot
from stirr_service.utils.text import strip_invalid_xml_chars


PLAYLIST_HEADER = "#EXTM3U"


def _attribute(value: str | None) -> str:
    """Attribute values are double-quoted, so inner double quotes become single ones"""
    return strip_invalid_xml_chars(value or "").replace('"', "'")


def render_channel_entry(channel: ChannelStatus) -> str:
    """Render the #EXTINF header and playback link for one channel."""
    header_pieces = [
        "#EXTINF:0",
        f'channel-id="{_attribute(channel.id)}"',
        f'tvg-logo="{_attribute(channel.logo_url)}"',
        f'tvg-name="{_attribute(channel.title)}"',
    ]
    header = f"{' '.join(header_pieces)}, {strip_invalid_xml_chars(channel.title)}"
    cleaned = header.replace("\r", "").replace("\n", "")

    return f"{cleaned}\n{strip_invalid_xml_chars(channel.link)}"


def render_playlist(snapshot: Snapshot) -> str:
    """Render the whole playlist document."""
    entries = [render_channel_entry(channel) for channel in snapshot.channels]
    return f"{PLAYLIST_HEADER}\n" + "\n\n".join(entries) + "\n"
