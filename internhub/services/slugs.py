"""
Title -> URL slug.

"Frontend Intern (Summer '25)" -> "frontend-intern-summer-25". Internship
slugs are globally unique: on collision we append -2, -3, ... rather than
erroring. Task slugs only need to be readable.
"""

import re
import unicodedata

from sqlalchemy.orm import Session

from internhub.models import Internship

MAX_SLUG_LENGTH = 200


def slugify(title: str) -> str:
    text = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode()
    text = re.sub(r"[^a-zA-Z0-9]+", "-", text.lower()).strip("-")
    return text[:MAX_SLUG_LENGTH].rstrip("-") or "internship"


def unique_internship_slug(db: Session, title: str, exclude_id: int | None = None) -> str:
    """Slug for `title` that no other internship uses yet."""
    base = slugify(title)
    query = db.query(Internship.slug).filter(Internship.slug.like(f"{base}%"))
    if exclude_id is not None:
        query = query.filter(Internship.id != exclude_id)
    taken = {row.slug for row in query}

    slug, n = base, 2
    while slug in taken:
        slug = f"{base}-{n}"
        n += 1
    return slug
