"""
Title/message templates for dashboard notifications.
"""

from typing import Dict, Tuple

import jinja2

DEFAULT_TEMPLATES = {
    'signal_alert.title': "{{ signal_type | upper }} signal: {{ ticker }}",
    'signal_alert.message': (
        "{{ signal_type | capitalize }} signal for {{ ticker }} at ${{ '{:,.2f}'.format(price) }}"
        "{% if timeframe %} on the {{ timeframe }} timeframe{% endif %}."
    ),
    'price_alert.title': "{{ symbol }} {{ 'up' if change_percent >= 0 else 'down' }} "
                         "{{ '{:.2f}'.format(change_percent | abs) }}%",
    'price_alert.message': "{{ symbol }} is trading at ${{ '{:,.2f}'.format(price) }}.",
    'system.title': "{{ title }}",
    'system.message': "{{ message }}",
}


class NotificationTemplates:
    """
    Renders notification titles and messages with jinja2.

    Each template name has a '<name>.title' and a '<name>.message' entry.
    Undefined variables raise jinja2.UndefinedError (a TemplateError).
    """

    def __init__(self, templates: Dict[str, str] = None):
        self.templates = dict(DEFAULT_TEMPLATES)
        if templates:
            self.templates.update(templates)

        self.jinja_env = jinja2.Environment(
            loader=jinja2.DictLoader(self.templates),
            undefined=jinja2.StrictUndefined,
            autoescape=False,
        )

    @property
    def names(self):
        return sorted({key.rsplit('.', 1)[0] for key in self.templates})

    def render(self, name: str, **context) -> Tuple[str, str]:
        """
        Render a notification template.

        Args:
            name: Template name (e.g. "signal_alert")
            **context: Template variables

        Returns:
            (title, message) tuple

        Raises:
            jinja2.TemplateNotFound: unknown template name
            jinja2.UndefinedError: a template variable is missing
        """
        title = self.jinja_env.get_template(f"{name}.title").render(**context)
        message = self.jinja_env.get_template(f"{name}.message").render(**context)
        return title.strip(), message.strip()
