import pytest

from ytproxy.models.internal import FormatDescriptor
from ytproxy.utils.filename import (
    build_download_filename,
    choose_extension,
    content_disposition,
    sanitize_filename,
)

AUDIO = FormatDescriptor(format_id="140", ext="m4a", vcodec="none", acodec="mp4a")
AUDIO_NO_EXT = FormatDescriptor(format_id="x", vcodec="none", acodec="opus")
VIDEO_NO_EXT = FormatDescriptor(format_id="y", vcodec="avc1", acodec="none")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ('My: Video?', "My Video"),
        ('a<b>c:"d"/e\\f|g?h*i', "abcdefghi"),
        ("  tabs\tand\nnewlines\r  ", "tabsandnewlines"),
        ("line\u2028sep\u2029", "linesep"),
        ("a\x7fb\x85c\x9f", "abc"),
        ("caf\u00e9 \u00a0ok", "caf\u00e9 \u00a0ok"),
        ("日本語のタイトル", "日本語のタイトル"),
        ("<  padded  >", "padded"),
    ],
)
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected


@pytest.mark.parametrize("raw", ['My: Video?', "  x  ", "<<>>", "a.b.c", "\x00\x1f ok  "])
def test_sanitize_is_idempotent(raw):
    once = sanitize_filename(raw)
    assert sanitize_filename(once) == once


def test_choose_extension():
    assert choose_extension(AUDIO) == "m4a"
    assert choose_extension(AUDIO_NO_EXT) == "mp3"
    assert choose_extension(VIDEO_NO_EXT) == "mp4"
    assert choose_extension(None) == "mp4"


def test_title_gets_extension():
    assert build_download_filename("My: Video?", AUDIO) == "My Video.m4a"


def test_extension_skipped_when_name_has_dot():
    assert build_download_filename("Vol. 2", AUDIO) == "Vol. 2"
    assert build_download_filename("ignored", AUDIO, "clip.mp3") == "clip.mp3"


def test_custom_name_is_sanitized():
    assert build_download_filename("title", VIDEO_NO_EXT, " my/clip ") == "myclip.mp4"


def test_empty_custom_name_falls_back_to_title():
    assert build_download_filename("title", AUDIO, "???") == "title.m4a"


def test_empty_title_falls_back_to_download():
    assert build_download_filename(None, AUDIO_NO_EXT) == "download.mp3"
    assert build_download_filename(":::", VIDEO_NO_EXT) == "download.mp4"


def test_content_disposition_ascii():
    assert content_disposition("My Video.mp4") == 'attachment; filename="My Video.mp4"'


def test_delete_char_never_reaches_header():
    name = build_download_filename("bad\x7fname", AUDIO)
    assert name == "badname.m4a"
    assert content_disposition(name) == 'attachment; filename="badname.m4a"'


def test_content_disposition_non_ascii_is_latin1_safe():
    header = content_disposition("動画.mp4")
    header.encode("latin-1")
    assert header.startswith('attachment; filename="__.mp4"')
    assert "filename*=UTF-8''%E5%8B%95%E7%94%BB.mp4" in header
