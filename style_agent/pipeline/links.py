from typing import Any, Dict
from urllib.parse import quote

SEARCH_URLS = {
    "amazon": ("amazon.com", "https://www.amazon.com/s?k={q}"),
    "asos": ("asos.com", "https://www.asos.com/search/?q={q}"),
    "nordstrom": ("nordstrom.com", "https://www.nordstrom.com/sr?keyword={q}"),
}


def search_links(name: str) -> Dict[str, str]:
    q = quote(name, safe="")
    return {store: tmpl.format(q=q) for store, (_host, tmpl) in SEARCH_URLS.items()}


def ensure_link(link: str | None, name: str, store: str | None = None) -> str | None:
    """Return a usable search URL for ``name``.

    Links the model wrote that already search for the item are kept. Links to a
    known store that search for something else are rebuilt from the item name.
    """
    q = quote(name, safe="")
    if not link:
        if store in SEARCH_URLS:
            return SEARCH_URLS[store][1].format(q=q)
        return link
    if name.replace(" ", "+") in link:
        return link
    for host, tmpl in SEARCH_URLS.values():
        if host in link:
            return tmpl.format(q=q)
    return link


def ensure_links(payload: Dict[str, Any]) -> Dict[str, Any]:
    for group in payload.get("recommendations") or []:
        for item in group.get("items") or []:
            name = item.get("name") or ""
            if not name:
                continue
            links = item.get("links") or {}
            for store in SEARCH_URLS:
                links[store] = ensure_link(links.get(store), name, store)
            item["links"] = links
    return payload
