"""Strict decoding of URL-encoded forms and URL references.

Werkzeug's form parser never fails: a broken escape such as ``%zz`` passes
through as literal text. ``/create`` has to tell a malformed body apart from a
good one, so form data is decoded here instead, and target URLs get the same
kind of syntax check.
"""

import re
import string
from collections import namedtuple
from urllib.parse import unquote, unquote_plus, urlsplit

from werkzeug.datastructures import MultiDict

FORM_MIMETYPE = "application/x-www-form-urlencoded"
DEFAULT_MAX_FORM_BYTES = 10 << 20

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL = re.compile(r"[\x00-\x1f\x7f]")
_HOST_ESCAPE = re.compile(r"%([0-9A-Fa-f]{2})")

_UNRESERVED = string.ascii_letters + string.digits + "-._~"
_HOST_CHARS = set(_UNRESERVED + "!$&'()*+,;=:[]<>\"%")
_USERINFO_CHARS = set(_UNRESERVED + "!$&'()*+,;=:%@")

ParsedURL = namedtuple("ParsedURL", "scheme authority path query fragment")


class FormParseError(ValueError):
    """Request form data could not be decoded."""


class URLParseError(ValueError):
    """A string is not a syntactically valid URL reference."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"parse {url!r}: {reason}")
        self.url = url
        self.reason = reason


def _check_escapes(text: str) -> None:
    match = _BAD_ESCAPE.search(text)
    if match:
        bad = text[match.start():match.start() + 3]
        raise FormParseError(f'invalid URL escape "{bad}"')


def parse_pairs(data: str):
    """Decode ``a=1&b=2`` into a list of ``(key, value)`` pairs."""
    pairs = []
    for field in data.split("&"):
        if not field:
            continue
        if ";" in field:
            raise FormParseError("invalid semicolon separator in query")
        key, _, value = field.partition("=")
        _check_escapes(key)
        _check_escapes(value)
        pairs.append((unquote_plus(key), unquote_plus(value)))
    return pairs


def parse_form(request, max_bytes: int = DEFAULT_MAX_FORM_BYTES) -> MultiDict:
    """Decode the body and query string of ``request`` into one MultiDict.

    Body values are listed before query values, so ``form.get(name)`` prefers
    the body. Only ``application/x-www-form-urlencoded`` bodies are read; any
    other body is ignored.

    Raises:
        FormParseError: a malformed escape, a ``;`` separator, or a body
            larger than ``max_bytes``.
    """
    pairs = []
    if request.mimetype == FORM_MIMETYPE:
        raw = request.stream.read(max_bytes + 1)
        if len(raw) > max_bytes:
            raise FormParseError("http: POST too large")
        pairs.extend(parse_pairs(raw.decode("utf-8", "replace")))
    pairs.extend(parse_pairs(request.query_string.decode("utf-8", "replace")))
    return MultiDict(pairs)


def _valid_optional_port(port: str) -> bool:
    if port == "":
        return True
    return port.startswith(":") and all(ch in string.digits for ch in port[1:])


def _check_host(host: str, original: str) -> None:
    if host.startswith("["):
        port = host[host.rfind("]") + 1:]
    else:
        colon = host.rfind(":")
        port = host[colon:] if colon != -1 else ""
    if not _valid_optional_port(port):
        raise URLParseError(original, f"invalid port {port!r} after host")
    for ch in host:
        if ord(ch) < 0x80 and ch not in _HOST_CHARS:
            raise URLParseError(original, f"invalid character {ch!r} in host name")
    if _BAD_ESCAPE.search(host):
        raise URLParseError(original, "invalid URL escape in host")
    for match in _HOST_ESCAPE.finditer(host):
        # only %25 and escapes of non-ASCII bytes may appear in a host
        if match.group(1) != "25" and int(match.group(1), 16) < 0x80:
            raise URLParseError(original, f'invalid URL escape "{match.group(0)}"')


def _check_userinfo(userinfo: str, original: str) -> None:
    if any(ord(ch) < 0x80 and ch not in _USERINFO_CHARS for ch in userinfo):
        raise URLParseError(original, "invalid userinfo")
    if _BAD_ESCAPE.search(userinfo):
        raise URLParseError(original, "invalid URL escape in userinfo")


def parse_url(raw: str) -> ParsedURL:
    """Check that ``raw`` is a syntactically valid URL reference.

    Only structure is checked, never reachability. Relative references such
    as ``not a url`` or ``/docs`` are valid.

    Raises:
        URLParseError: ``raw`` cannot be a URL reference.
    """
    if _CONTROL.search(raw):
        raise URLParseError(raw, "invalid control character in URL")
    if raw.startswith(":"):
        raise URLParseError(raw, "missing protocol scheme")

    try:
        parts = urlsplit(raw)
    except ValueError as e:
        raise URLParseError(raw, str(e)) from e

    # urlsplit drops leading spaces; a reference that starts with one has no scheme
    scheme = parts.scheme if raw[:1].isalpha() else ""
    if not scheme and not raw.startswith("/"):
        segment = raw.partition("#")[0].partition("?")[0].split("/", 1)[0]
        if ":" in segment:
            raise URLParseError(raw, "first path segment in URL cannot contain colon")

    if parts.netloc:
        userinfo, _, host = parts.netloc.rpartition("@")
        _check_host(host, raw)
        if "@" in parts.netloc:
            _check_userinfo(userinfo, raw)

    if _BAD_ESCAPE.search(parts.path):
        raise URLParseError(raw, "invalid URL escape in path")
    if _BAD_ESCAPE.search(parts.fragment):
        raise URLParseError(raw, "invalid URL escape in fragment")
    return ParsedURL(scheme, parts.netloc, unquote(parts.path), parts.query, unquote(parts.fragment))
