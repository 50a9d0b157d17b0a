"""Sitemap XML built from the static site pages plus one URL per listing."""
from urllib.parse import quote
from xml.sax.saxutils import escape

CHANGEFREQ = "weekly"
PRIORITY = "0.8"


def listing_url(site_url: str, listing_id: str) -> str:
    return f"{site_url.rstrip('/')}/property-details.html?id={quote(str(listing_id), safe='')}"


def build_sitemap(site_url: str, pages: list[str], listing_ids: list[str]) -> str:
    base = site_url.rstrip("/")
    urls = [f"{base}/{page.lstrip('/')}" for page in pages]
    urls += [listing_url(site_url, listing_id) for listing_id in listing_ids]

    entries = "".join(
        f"\n  <url>\n    <loc>{escape(url)}</loc>\n"
        f"    <changefreq>{CHANGEFREQ}</changefreq>\n"
        f"    <priority>{PRIORITY}</priority>\n  </url>"
        for url in urls
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        f"{entries}\n</urlset>\n"
    )
