"""Per-page SEO metadata rendered into the HTML head."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from html import escape
from typing import Any, Dict, List, Optional, Tuple

SITE_NAME = "Linus Kölker"
SITE_URL = "https://koelker.tech"
DEFAULT_IMAGE = f"{SITE_URL}/favicon.png"
DEFAULT_IMAGE_ALT = "Logo von Linus Kölker"
DEFAULT_ROBOTS = "index,follow,max-snippet:-1,max-image-preview:large,max-video-preview:-1"
DEFAULT_KEYWORDS: Tuple[str, ...] = (
    "Linus Kölker",
    "Softwareentwickler",
    "Softwareentwicklung",
    "Backend",
    "Webentwicklung",
    "Angular",
    "TypeScript",
    "Java",
    "Spring Boot",
    "Clean Code",
    "Architektur",
    "Testbarkeit",
    "Docker",
    "GitHub",
    "Portfolio",
)


@dataclass(frozen=True)
class PageMeta:
    title: str
    description: str
    url: str
    image: str = DEFAULT_IMAGE
    image_alt: Optional[str] = DEFAULT_IMAGE_ALT
    site_name: str = SITE_NAME
    type: str = "website"
    locale: str = "de_DE"
    keywords: Tuple[str, ...] = DEFAULT_KEYWORDS
    robots: str = DEFAULT_ROBOTS
    canonical: Optional[str] = None
    json_ld: Optional[Dict[str, Any]] = field(default=None, hash=False)


def _meta(attr: str, key: str, content: str) -> str:
    return f'<meta {attr}="{escape(key)}" content="{escape(content)}">'


def render_head(meta: PageMeta) -> str:
    tags: List[str] = [
        f"<title>{escape(meta.title)}</title>",
        _meta("name", "description", meta.description),
        _meta("name", "robots", meta.robots),
        _meta("name", "author", meta.site_name),
    ]
    if meta.keywords:
        tags.append(_meta("name", "keywords", ", ".join(meta.keywords)))

    tags += [
        _meta("property", "og:title", meta.title),
        _meta("property", "og:description", meta.description),
        _meta("property", "og:url", meta.url),
        _meta("property", "og:type", meta.type),
        _meta("property", "og:site_name", meta.site_name),
        _meta("property", "og:locale", meta.locale),
        _meta("property", "og:image", meta.image),
    ]
    if meta.image_alt:
        tags.append(_meta("property", "og:image:alt", meta.image_alt))

    tags += [
        _meta("name", "twitter:card", "summary"),
        _meta("name", "twitter:title", meta.title),
        _meta("name", "twitter:description", meta.description),
        _meta("name", "twitter:image", meta.image),
    ]
    if meta.image_alt:
        tags.append(_meta("name", "twitter:image:alt", meta.image_alt))

    tags.append(f'<link rel="canonical" href="{escape(meta.canonical or meta.url)}">')

    if meta.json_ld:
        # "</" must not terminate the script element early
        payload = json.dumps(meta.json_ld, ensure_ascii=False).replace("</", "<\\/")
        tags.append(f'<script type="application/ld+json" data-seo="jsonld">{payload}</script>')

    return "\n    ".join(tags)


HOME = PageMeta(
    title="Linus Kölker | Softwareentwickler (Fullstack)",
    description=(
        "Portfolio von Linus Kölker, Softwareentwickler mit Fokus auf Backend, Web, "
        "Clean Code, Architektur, Tests und Deployment."
    ),
    url=f"{SITE_URL}/",
    json_ld={
        "@context": "https://schema.org",
        "@type": "Person",
        "name": SITE_NAME,
        "url": SITE_URL,
        "jobTitle": "Softwareentwickler",
        "email": "mailto:linus.koelker@gmx.de",
        "sameAs": [
            "https://github.com/HolzKopf108",
            "https://www.linkedin.com/in/linus-k%C3%B6lker-013a25258/",
        ],
        "knowsAbout": [
            "Backend",
            "Webentwicklung",
            "Java",
            "Spring Boot",
            "TypeScript",
            "Angular",
            "React",
            "Next.js",
            "Flutter",
            "Docker",
            "Clean Code",
            "Architektur",
            "Testbarkeit",
            "Open Source",
        ],
        "image": DEFAULT_IMAGE,
    },
)

IMPRESSUM = PageMeta(
    title="Impressum | Linus Kölker",
    description="Impressum und rechtliche Angaben zur Website von Linus Kölker.",
    url=f"{SITE_URL}/impressum",
)

DATENSCHUTZ = PageMeta(
    title="Datenschutzerklärung | Linus Kölker",
    description="Datenschutzerklärung zur Website von Linus Kölker mit Informationen zur Datenverarbeitung.",
    url=f"{SITE_URL}/datenschutz",
)

LOGIN = PageMeta(
    title="Admin Login | Linus Kölker",
    description="Login für den Adminbereich.",
    url=f"{SITE_URL}/login",
)

ADMIN = PageMeta(
    title="Admin Dashboard | Linus Kölker",
    description="Adminbereich mit Analytics-Übersicht.",
    url=f"{SITE_URL}/admin",
)
