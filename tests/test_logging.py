import pytest
from httpx import AsyncClient

from edufin.core.logging import PIIRedactionProcessor


def test_pan_and_email_are_masked() -> None:
    processor = PIIRedactionProcessor()

    event = processor(
        None,
        "info",
        {
            "event": "onboarding_submitted",
            "pan": "ABCDE1234F",
            "contact": "mail priya.sharma@example.com now",
            "nested": {"emails": ["a.b@example.org"]},
            "amount": 127200,
        },
    )

    assert event["event"] == "onboarding_submitted"
    assert event["pan"] == "AB******4F"
    assert event["contact"] == "mail ***@example.com now"
    assert event["nested"] == {"emails": ["***@example.org"]}
    assert event["amount"] == 127200


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
