"""URL helpers for redirect and email links."""

from typing import Optional
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl


def append_params(
    url: str, params: dict[str, Optional[str]], fragment: bool = False
) -> str:
    """
    Add ``params`` to ``url``, keeping any parameters already present.

    ``None`` values are skipped. With ``fragment=True`` the parameters go
    into the fragment instead of the query string.
    """
    extra = [(key, value) for key, value in params.items() if value is not None]
    scheme, netloc, path, query, frag = urlsplit(url)
    if fragment:
        frag = urlencode(parse_qsl(frag) + extra)
    else:
        query = urlencode(parse_qsl(query, keep_blank_values=True) + extra)
    return urlunsplit((scheme, netloc, path, query, frag))
