"""
Embeddable widget code for a client.

Every variant is a fixed Jinja2 template filled from a ``ClientData`` record.
User-supplied values only ever reach the output through the ``js`` filter,
which emits a JSON literal with the characters that could end a ``<script>``
element or an HTML comment replaced by ``\\uXXXX`` escapes. That keeps the
generated HTML and JavaScript well formed whatever the client typed into a
color, font or URL field.
"""

import json
from pathlib import Path
from typing import Any, Callable

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from bbe_admin.schemas.clients import ClientData

DEFAULT_WIDGET_HOST = "https://beyondbooking.vercel.app"

# Origins the all-listings page accepts search messages from, besides the
# widget host itself and the client's Wix CMS site.
STATIC_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "https://editor.wix.com",
    "https://beyondbooking.wixstudio.com",
]

_JS_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class UnknownVariant(ValueError):
    pass


def js_literal(value: Any) -> str:
    """Encode a Python value as a JavaScript literal safe inside inline scripts."""
    text = json.dumps(value, ensure_ascii=False)
    for char, escape in _JS_ESCAPES.items():
        text = text.replace(char, escape)
    return text


_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).resolve().parent / "templates")),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)
_env.filters["js"] = js_literal


def _render(template_name: str, client: ClientData, widget_host: str) -> str:
    template = _env.get_template(template_name)
    return template.render(
        client=client,
        prefs=client.preferences,
        widget_host=widget_host.rstrip("/"),
        static_origins=STATIC_ALLOWED_ORIGINS,
    ).strip()


def all_listing_widget_code(client: ClientData, widget_host: str = DEFAULT_WIDGET_HOST) -> str:
    """HTML page hosting the listings iframe and configuring it via postMessage."""
    return _render("all_listings.html.j2", client, widget_host)


def single_listing_widget_code(client: ClientData, widget_host: str = DEFAULT_WIDGET_HOST) -> str:
    return _render("single_listing.js.j2", client, widget_host)


def wix_home_page_code(client: ClientData, widget_host: str = DEFAULT_WIDGET_HOST) -> str:
    return _render("wix_home.js.j2", client, widget_host)


def wix_book_now_page_code(client: ClientData, widget_host: str = DEFAULT_WIDGET_HOST) -> str:
    return _render("wix_book_now.js.j2", client, widget_host)


def wix_dynamic_page_code(client: ClientData, widget_host: str = DEFAULT_WIDGET_HOST) -> str:
    return _render("wix_dynamic.js.j2", client, widget_host)


# variant key -> (tab title, generator, language of the artifact)
VARIANTS: dict[str, tuple[str, Callable[[ClientData, str], str], str]] = {
    "all-listings": ("All Listings", all_listing_widget_code, "html"),
    "single-listing": ("Single Listing", single_listing_widget_code, "javascript"),
    "wix-home": ("Wix Home Page", wix_home_page_code, "javascript"),
    "wix-book-now": ("Wix Book Now Page", wix_book_now_page_code, "javascript"),
    "wix-dynamic": ("Wix Dynamic Page", wix_dynamic_page_code, "javascript"),
}
PREVIEW_VARIANTS = ("all-listings", "single-listing")


def render_code(variant: str, client: ClientData, widget_host: str = DEFAULT_WIDGET_HOST) -> str:
    try:
        _, generate, _ = VARIANTS[variant]
    except KeyError:
        raise UnknownVariant(variant) from None
    return generate(client, widget_host)


def preview_document(variant: str, client: ClientData, widget_host: str = DEFAULT_WIDGET_HOST) -> str:
    """Standalone HTML for the preview iframe; script-only variants get a bare shell."""
    if variant not in PREVIEW_VARIANTS:
        raise UnknownVariant(variant)
    code = render_code(variant, client, widget_host)
    if VARIANTS[variant][2] == "html":
        return code
    return _env.get_template("preview_shell.html.j2").render(
        client=client, prefs=client.preferences, script=code
    ).strip()
