import os
import re
from datetime import date


def clean_filename(name: str) -> str:
    name = os.path.basename(name or "")
    name = re.sub(r"[^\w\-_.]", "_", name)
    return name


def export_filename(title: str) -> str:
    """PDF download name: every non-alphanumeric becomes '_', lower-cased."""
    return re.sub(r"[^a-z0-9]", "_", title or "", flags=re.IGNORECASE).lower() + ".pdf"


def today_label(today: date | None = None) -> str:
    return (today or date.today()).strftime("%m/%d/%Y")


def author_name(user) -> str:
    """Display name fallback used on public pages."""
    if user is None:
        return "Unknown Author"
    if getattr(user, "display_name", None):
        return user.display_name
    email = getattr(user, "email", None) or ""
    if email:
        return email.split("@")[0]
    return "Unknown Author"
