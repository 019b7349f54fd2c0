# backend/bridge/mock_responses.py
from bridge.models import TranslationOutput, TranslationSummary


def generate_mock_translation(target_language: str = "en") -> TranslationOutput:
    """Return a fake but realistic translation for running without an LLM key."""
    return TranslationOutput(
        translation_html=(
            "<h1>Parent-Teacher Conference Notice</h1>"
            "<p>Dear Parent/Guardian,</p>"
            "<p>You are invited to a parent-teacher conference on <strong>March 14, 2025</strong> "
            "at 3:30 PM in Room 204.</p>"
            "<ul><li>Bring your child's report card.</li>"
            "<li>Sign and return the attached permission slip.</li></ul>"
            "<p>The field trip fee is $15.00.</p>"
            f"<p><em>[Mock translation - target language: {target_language}]</em></p>"
        ),
        summary=TranslationSummary(
            purpose="The school is inviting you to a parent-teacher conference about your child's progress.",
            actions=[
                "Attend the conference on March 14 at 3:30 PM in Room 204",
                "Bring your child's report card",
                "Sign and return the permission slip",
            ],
            due_dates=["March 14, 2025 - conference"],
            costs=["$15.00 field trip fee"],
        ),
        detected_language="es",
    )


class MockLLMClient:
    """Stands in for LLMClient when MOCK_MODE is enabled."""

    model = "mock"

    async def generate_structured(self, content, system_prompt, pydantic_model):
        target = "en"
        text = content if isinstance(content, str) else " ".join(
            block.get("text", "") for block in content if isinstance(block, dict)
        )
        for line in text.splitlines():
            if line.startswith("Target language:"):
                target = line.split(":", 1)[1].strip()
                break
        return {
            "data": generate_mock_translation(target).model_dump(),
            "usage": {"input_tokens": 0, "output_tokens": 0, "model": self.model},
        }
