"""Template rendering for email notifications using Jinja2.

Templates live in the jobalerts.notifications.email_templates package
directory. Undefined variables raise instead of rendering empty strings.
"""

from typing import Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from jobalerts.logging import get_logger

from .models import NotificationTemplateError

logger = get_logger(__name__, component="notification")


class TemplateRenderer:
    """Renders the digest subject, HTML body and plain text body.

    Only ``*.html.j2`` templates are HTML-escaped; the subject and text body
    are rendered verbatim.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        subject_template: str = "job_alert_subject.j2",
        html_template: str = "job_alert_body.html.j2",
        text_template: str = "job_alert_body.txt.j2",
    ):
        self.subject_template_name = subject_template
        self.html_template_name = html_template
        self.text_template_name = text_template

        self.env = Environment(
            loader=PackageLoader("jobalerts.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, context: Dict) -> Dict[str, str]:
        """Render all email templates with the provided context.

        Returns:
            Dictionary containing subject (single line), html_body and text_body

        Raises:
            NotificationTemplateError: If template rendering fails
        """
        try:
            subject_template = self.env.get_template(self.subject_template_name)
            html_template = self.env.get_template(self.html_template_name)
            text_template = self.env.get_template(self.text_template_name)

            subject = " ".join(subject_template.render(context).split())
            html_body = html_template.render(context)
            text_body = text_template.render(context)

        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        logger.debug(
            "Rendered digest templates",
            extra={"event": "notification.rendered", "alert_title": context.get("alert_title")},
        )

        return {
            "subject": subject,
            "html_body": html_body,
            "text_body": text_body,
        }
