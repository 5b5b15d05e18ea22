"""URL slug generation for skill names.

Converts names like "acme/pdf-parser" or "user@tool" into slugs like
"acme-pdf-parser" and "user-at-tool".
"""

import re


def slugify(name: str) -> str:
    """Convert a skill name to a URL slug.

    Rules:
    - Lowercase
    - Whitespace and ``/`` become hyphens, ``@`` becomes ``-at-``
    - Strip all characters except alphanumeric and hyphens
    - Collapse consecutive hyphens, strip leading/trailing hyphens

    Args:
        name: Skill name.

    Returns:
        The slug.

    Raises:
        ValueError: If nothing usable is left after processing.
    """
    slug = name.strip().lower()
    slug = re.sub(r"\s+", "-", slug)
    slug = slug.replace("/", "-")
    slug = slug.replace("@", "-at-")
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")

    if not slug:
        msg = f"Skill name '{name}' cannot be turned into a slug: empty after processing"
        raise ValueError(msg)

    return slug
