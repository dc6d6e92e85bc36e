"""sitemap.xml and robots.txt rendering from portfolio data."""

from __future__ import annotations

from datetime import date
from xml.sax.saxutils import escape

from .models import PortfolioData

_STATIC_PAGES = (
    ("/", "weekly", "1.0"),
    ("/work", "monthly", "0.9"),
    ("/journal", "monthly", "0.8"),
    ("/about", "yearly", "0.7"),
)


def _url(loc: str, lastmod: str, changefreq: str, priority: str) -> str:
    return (
        "  <url>\n"
        f"    <loc>{escape(loc)}</loc>\n"
        f"    <lastmod>{lastmod}</lastmod>\n"
        f"    <changefreq>{changefreq}</changefreq>\n"
        f"    <priority>{priority}</priority>\n"
        "  </url>\n"
    )


def build_sitemap(data: PortfolioData, base_url: str, today: date | str | None = None) -> str:
    base_url = base_url.rstrip("/")
    if today is None:
        today = date.today()
    current = today.isoformat() if isinstance(today, date) else today

    xml = '<?xml version="1.0" encoding="UTF-8"?>\n'
    xml += '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'

    for path, changefreq, priority in _STATIC_PAGES:
        xml += _url(f"{base_url}{path}", current, changefreq, priority)

    for project in data.projects:
        lastmod = f"{project.year}-01-01" if project.year.isdigit() else current
        if project.category == "Narrative":
            priority = "0.9"
        elif project.is_featured:
            priority = "0.8"
        else:
            priority = "0.7"
        xml += _url(f"{base_url}/work/{project.slug}", lastmod, "monthly", priority)

    for post in data.posts:
        lastmod = post.publish_date[:10] or current
        xml += _url(f"{base_url}/journal/{post.slug}", lastmod, "monthly", "0.7")

    xml += "</urlset>"
    return xml


def build_robots(domain: str | None) -> str:
    base_url = f"https://{domain or 'example.com'}"
    return (
        "User-agent: *\n"
        "Allow: /\n"
        "Disallow: /admin\n"
        "Disallow: /.env\n"
        "\n"
        f"Sitemap: {base_url}/sitemap.xml\n"
        "\n"
        "# Social media crawlers\n"
        "User-agent: facebookexternalhit\n"
        "Allow: /\n"
        "\n"
        "User-agent: Twitterbot\n"
        "Allow: /\n"
        "\n"
        "User-agent: LinkedInBot\n"
        "Allow: /\n"
    )
