"""Homepage tag validation: unknown or default `?tag=` values redirect to a clean URL."""
from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

VALID_TAGS = frozenset(
    {
        "all",
        "trump",
        "elections",
        "us-politics",
        "immigration",
        "world",
        "politics",
        "france",
        "macron",
        "biden",
        "harris",
        "desantis",
    }
)

# Political tag slug -> Gamma tag slug; "all" means the politics tag.
POLITICAL_TAGS = {
    "all": "politics",
    "trump": "trump",
    "elections": "elections",
    "us-politics": "us-politics",
    "immigration": "immigration",
    "world": "world",
    "politics": "politics",
}

_DISPLAY_NAMES = {
    "all": "Political Markets",
    "trump": "Trump Markets",
    "elections": "Elections Markets",
    "us-politics": "U.S. Politics Markets",
    "immigration": "Immigration Markets",
    "world": "World Politics Markets",
    "politics": "Politics Markets",
}


def is_valid_political_tag(tag: str) -> bool:
    return tag in POLITICAL_TAGS


def political_tag_display_name(tag: str) -> str:
    """Page title for a tag; unknown tags become "<Tag> Markets"."""
    name = _DISPLAY_NAMES.get(tag.lower())
    if name is not None:
        return name
    return f"{tag[:1].upper()}{tag[1:]} Markets"


class TagRedirectMiddleware(BaseHTTPMiddleware):
    """On `GET /?tag=...`, redirect invalid tags and `all` to `/` with no query.

    Only the homepage path is inspected, so API routes pass straight through.
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/":
            tag = request.query_params.get("tag")
            if tag:
                lowered = tag.lower()
                if lowered not in VALID_TAGS or lowered == "all":
                    return RedirectResponse(
                        url=str(request.url.replace(path="/", query="")),
                        status_code=307,
                    )
        return await call_next(request)
