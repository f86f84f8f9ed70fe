import pytest

from carenotify.errors import InvalidNotification
from carenotify.notifications.models import NotificationType
from carenotify.notifications.policies import SCENES
from carenotify.notifications.templates import DEFAULT_TEMPLATES, DictTemplateRenderer


@pytest.mark.unit
class TestDictTemplateRenderer:
    def test_render_substitutes_placeholders(self):
        renderer = DictTemplateRenderer()

        rendered = renderer.render(
            "tpl_payment_reminder",
            {"name": "Li Wei", "amount": 120, "due_date": "2024-01-31"},
        )

        assert rendered == {
            "title": "Payment due",
            "content": "Dear Li Wei, please pay 120 before 2024-01-31.",
        }

    def test_missing_placeholders_are_left_in_place(self):
        rendered = DictTemplateRenderer().render("medication_reminder_default", {})

        assert rendered["content"] == "Time to take $medication."

    def test_unknown_template(self):
        with pytest.raises(InvalidNotification, match="Unknown template: nope"):
            DictTemplateRenderer().render("nope", {})

    def test_empty_registry(self):
        renderer = DictTemplateRenderer({})

        assert not renderer.has_template("tpl_health_alert")

    def test_register(self):
        renderer = DictTemplateRenderer({})
        renderer.register("welcome", "Hello $name", "Welcome aboard")

        assert renderer.has_template("welcome")
        assert renderer.render("welcome", {"name": "Ana"})["title"] == "Hello Ana"

    def test_every_scene_template_is_registered(self):
        for scene in SCENES.values():
            assert scene.template_id in DEFAULT_TEMPLATES

    def test_default_templates_follow_type_naming(self):
        for template_id in DEFAULT_TEMPLATES:
            if template_id.endswith("_default"):
                NotificationType(template_id[: -len("_default")])
