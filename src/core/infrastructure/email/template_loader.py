"""Jinja2 email templates.

Templates live in resources/email_templates/. Each message ships as a pair:
`<name>.html` for the rich body and `<name>.txt` for the plain-text fallback.
"""

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parents[4] / "resources" / "email_templates"


@lru_cache(maxsize=4)
def get_template_env(directory: Path = TEMPLATES_DIR) -> Environment:
    if not directory.exists():
        raise FileNotFoundError(f"Email templates directory not found: {directory}")
    return Environment(
        loader=FileSystemLoader(directory),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
    )


def render_template(name: str, **variables: object) -> str:
    """Render one template file, e.g. "magic_link.html".

    Raises:
        jinja2.TemplateNotFound: If template file not found
        jinja2.UndefinedError: If a variable used by the template is missing
    """
    return get_template_env().get_template(name).render(**variables)


def render_email(name: str, **variables: object) -> tuple[str, str]:
    """Render the (html, plain) pair for a template base name."""
    return (
        render_template(f"{name}.html", **variables),
        render_template(f"{name}.txt", **variables),
    )
