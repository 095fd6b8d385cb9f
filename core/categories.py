"""Closed set of artifact categories and the single normalization step."""

from enum import Enum


class Category(str, Enum):
    PAGE = "page"
    LAYOUT = "layout"
    COMPONENT = "component"
    API = "api"
    UTILITY = "utility"
    HOOK = "hook"
    TYPE = "type"
    CONFIG = "config"
    STYLE = "style"
    STATIC = "static"
    DOCUMENTATION = "documentation"
    # framework-special file conventions
    MIDDLEWARE = "middleware"
    LOADING = "loading"
    ERROR = "error"
    NOT_FOUND = "not-found"
    GLOBAL_ERROR = "global-error"
    ROUTE = "route"
    TEMPLATE = "template"
    DEFAULT = "default"
    UNKNOWN = "unknown"


_SYNONYMS = {
    "pages": Category.PAGE,
    "layouts": Category.LAYOUT,
    "components": Category.COMPONENT,
    "ui": Category.COMPONENT,
    "api route": Category.API,
    "api-route": Category.API,
    "api_route": Category.API,
    "apis": Category.API,
    "endpoint": Category.API,
    "util": Category.UTILITY,
    "utils": Category.UTILITY,
    "utilities": Category.UTILITY,
    "helper": Category.UTILITY,
    "helpers": Category.UTILITY,
    "lib": Category.UTILITY,
    "hooks": Category.HOOK,
    "types": Category.TYPE,
    "typedef": Category.TYPE,
    "configuration": Category.CONFIG,
    "configs": Category.CONFIG,
    "styles": Category.STYLE,
    "css": Category.STYLE,
    "stylesheet": Category.STYLE,
    "docs": Category.DOCUMENTATION,
    "doc": Category.DOCUMENTATION,
    "readme": Category.DOCUMENTATION,
    "assets": Category.STATIC,
    "asset": Category.STATIC,
    "public": Category.STATIC,
    "notfound": Category.NOT_FOUND,
    "not_found": Category.NOT_FOUND,
    "404": Category.NOT_FOUND,
    "global_error": Category.GLOBAL_ERROR,
    "routes": Category.ROUTE,
    "templates": Category.TEMPLATE,
}

_BY_VALUE = {c.value: c for c in Category}


def normalize_category(raw) -> Category:
    """Map a raw category string from a model reply onto the closed enum.

    Unrecognized values map to Category.UNKNOWN rather than raising.
    """
    if isinstance(raw, Category):
        return raw
    if raw is None:
        return Category.UNKNOWN
    key = " ".join(str(raw).strip().lower().split())
    if key in _BY_VALUE:
        return _BY_VALUE[key]
    return _SYNONYMS.get(key, Category.UNKNOWN)


# Categories whose files are React components rendered by the framework
RENDERED_CATEGORIES = frozenset({
    Category.PAGE, Category.LAYOUT, Category.COMPONENT, Category.LOADING,
    Category.ERROR, Category.NOT_FOUND, Category.GLOBAL_ERROR, Category.TEMPLATE,
    Category.DEFAULT,
})

_SPECIAL_STEMS = {
    "page": Category.PAGE,
    "layout": Category.LAYOUT,
    "loading": Category.LOADING,
    "error": Category.ERROR,
    "not-found": Category.NOT_FOUND,
    "global-error": Category.GLOBAL_ERROR,
    "template": Category.TEMPLATE,
    "default": Category.DEFAULT,
    "route": Category.API,
    "middleware": Category.MIDDLEWARE,
}


def category_for_path(path) -> Category:
    """Best guess of a file's category from its path alone.

    Used for files that arrive without a category, e.g. a tree on disk.
    """
    parts = path.replace("\\", "/").split("/")
    base = parts[-1]
    dirs = set(parts[:-1])
    stem = base.split(".", 1)[0]
    ext = "." + base.rsplit(".", 1)[-1] if "." in base else ""

    if ext in (".tsx", ".jsx", ".ts", ".js") and stem in _SPECIAL_STEMS:
        return _SPECIAL_STEMS[stem]
    if ext == ".md":
        return Category.DOCUMENTATION
    if ext in (".css", ".scss", ".sass", ".less"):
        return Category.STYLE
    if ext == ".json" or ".config." in base or base.startswith(".env"):
        return Category.CONFIG
    if base.endswith(".d.ts") or dirs & {"types", "@types"}:
        return Category.TYPE
    if "api" in dirs or "pages/api" in path:
        return Category.API
    if "hooks" in dirs or (stem.startswith("use") and stem[3:4].isupper()):
        return Category.HOOK
    if "components" in dirs:
        return Category.COMPONENT
    if "public" in dirs or ext in (".svg", ".png", ".ico", ".jpg", ".html", ".txt"):
        return Category.STATIC
    return Category.UTILITY
