"""Jinja2 templates for email bodies.

Templates are parsed once (keep the returned object around) and applied to
an email right before it is sent::

    html = parse_html_template("templates/welcome.html", css=service.config.email_css)
    text = parse_template("templates/welcome.txt")
    apply_templates(email, html, text, {"name": "Ada"})

HTML templates may contain a ``{{ styles }}`` placeholder, which is replaced
by the stylesheet before the template is compiled.  Such templates render
with the stylesheet inlined into ``style`` attributes by :mod:`premailer`,
since many mail clients drop ``<style>`` blocks.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import jinja2
import premailer

from email_service.message import Email

STYLES_PLACEHOLDER = "{{ styles }}"

PathLike = Union[str, Path]


class InlinedTemplate:
    """An HTML template whose rendered output has its stylesheet inlined."""

    def __init__(self, template: jinja2.Template) -> None:
        self.template = template

    def render(self, *args: Any, **kwargs: Any) -> str:
        return inline_css(self.template.render(*args, **kwargs))


Template = Union[jinja2.Template, InlinedTemplate]


def _environment(directory: Path) -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(directory)),
        autoescape=jinja2.select_autoescape(["html", "htm"]),
    )


def parse_template(path: PathLike) -> jinja2.Template:
    """Parse the template file at ``path``.

    Raises:
        jinja2.TemplateNotFound: If the file does not exist.
        jinja2.TemplateSyntaxError: If the template is malformed.
    """
    path = Path(path)
    return _environment(path.parent).get_template(path.name)


def inline_css(html: str) -> str:
    """Move the rules of every ``<style>`` block into ``style`` attributes."""
    return premailer.Premailer(
        html,
        keep_style_tags=False,
        remove_classes=False,
        disable_validation=True,
        allow_network=False,
        cssutils_logging_level=logging.CRITICAL,
    ).transform()


def parse_html_template(path: PathLike, css: bytes = b"") -> Template:
    """Parse an HTML template, injecting ``css`` into its styles placeholder.

    The returned template inlines the stylesheet when rendered.  Without a
    placeholder, or without CSS, this is :func:`parse_template`.
    """
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    if STYLES_PLACEHOLDER not in source or not css:
        return parse_template(path)
    source = source.replace(STYLES_PLACEHOLDER, css.decode("utf-8"))
    return InlinedTemplate(_environment(path.parent).from_string(source))


def _email_context(email: Email) -> Dict[str, Any]:
    context: Dict[str, Any] = {f.name: getattr(email, f.name) for f in fields(email)}
    context["email"] = email
    return context


def apply_templates(
    email: Email,
    html_template: Optional[Template] = None,
    text_template: Optional[Template] = None,
    data: Optional[Mapping[str, Any]] = None,
) -> None:
    """Render the templates into ``email.html_content`` and ``plain_text_content``.

    ``data`` defaults to the email's own fields (also available as
    ``email``).  A template that is ``None`` leaves its field untouched.
    """
    context = dict(data) if data is not None else _email_context(email)

    if html_template is not None:
        email.html_content = html_template.render(context)
    if text_template is not None:
        email.plain_text_content = text_template.render(context)


__all__ = [
    "InlinedTemplate",
    "STYLES_PLACEHOLDER",
    "apply_templates",
    "inline_css",
    "parse_html_template",
    "parse_template",
]
