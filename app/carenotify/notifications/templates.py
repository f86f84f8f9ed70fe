"""Template rendering boundary.

The rendering engine is external. ``TemplateRenderer`` is the interface the
factory consumes; ``DictTemplateRenderer`` is a minimal registry-backed
implementation with ``$placeholder`` substitution.
"""

from string import Template
from typing import Any, Dict, Optional, Protocol, Tuple

from carenotify.errors import InvalidNotification
from carenotify.logging import get_module_logger

logger = get_module_logger()


class TemplateRenderer(Protocol):
    """Renders a template id and payload into a title and content."""

    def has_template(self, template_id: str) -> bool: ...

    def render(self, template_id: str, data: Dict[str, Any]) -> Dict[str, str]:
        """Return ``{"title": ..., "content": ...}``.

        Raises:
            InvalidNotification: If the template is unknown
        """
        ...


# Default templates registered per notification type as ``<type>_default``.
DEFAULT_TEMPLATES: Dict[str, Tuple[str, str]] = {
    "appointment_confirm_default": (
        "Appointment confirmed",
        "Your appointment on $appointment_time has been confirmed.",
    ),
    "appointment_reminder_default": (
        "Appointment reminder",
        "Reminder: you have an appointment at $appointment_time.",
    ),
    "payment_reminder_default": (
        "Payment reminder",
        "A payment of $amount is due on $due_date.",
    ),
    "health_alert_default": (
        "Health alert",
        "Health alert for $patient_name: $message",
    ),
    "service_complete_default": (
        "Service completed",
        "Your care service has been completed.",
    ),
    "medication_reminder_default": (
        "Medication reminder",
        "Time to take $medication.",
    ),
    "tpl_appointment_confirm": (
        "Appointment confirmed",
        "Dear $name, your appointment on $appointment_time is confirmed.",
    ),
    "tpl_appointment_reminder": (
        "Upcoming appointment",
        "Dear $name, your appointment starts at $appointment_time.",
    ),
    "tpl_payment_reminder": (
        "Payment due",
        "Dear $name, please pay $amount before $due_date.",
    ),
    "tpl_health_alert": (
        "Health alert",
        "Attention: $message",
    ),
    "tpl_service_complete": (
        "Service completed",
        "Dear $name, your care service has been completed. Please rate it.",
    ),
    "tpl_medication_reminder": (
        "Medication reminder",
        "Dear $name, it is time to take $medication.",
    ),
}


class DictTemplateRenderer:
    """In-memory template registry.

    Placeholders missing from ``data`` are left in place
    (``string.Template.safe_substitute``).
    """

    def __init__(self, templates: Optional[Dict[str, Tuple[str, str]]] = None):
        self._templates: Dict[str, Tuple[str, str]] = dict(
            DEFAULT_TEMPLATES if templates is None else templates
        )

    def register(self, template_id: str, title: str, content: str) -> None:
        self._templates[template_id] = (title, content)

    def has_template(self, template_id: str) -> bool:
        return template_id in self._templates

    def render(self, template_id: str, data: Dict[str, Any]) -> Dict[str, str]:
        if template_id not in self._templates:
            logger.warning("template_not_found", template_id=template_id)
            raise InvalidNotification(f"Unknown template: {template_id}")

        title, content = self._templates[template_id]
        values = {k: str(v) for k, v in data.items()}
        return {
            "title": Template(title).safe_substitute(values),
            "content": Template(content).safe_substitute(values),
        }
