"""Builders shared by the test modules."""

from datetime import UTC, datetime

from app.models.automation_rule import AutomationRule, AutomationRuleStatus

BUSINESS_PHONE = "+1 555-000-1111"
BUSINESS_PHONE_NUMBER_ID = "106540352242922"
CUSTOMER_PHONE = "15557654321"


def text_message(external_id, body, *, sender=CUSTOMER_PHONE, timestamp="1700000000"):
    return {
        "from": sender,
        "id": external_id,
        "timestamp": timestamp,
        "type": "text",
        "text": {"body": body},
    }


def whatsapp_payload(
    messages=None,
    statuses=None,
    *,
    display_phone=BUSINESS_PHONE,
    phone_number_id=BUSINESS_PHONE_NUMBER_ID,
    contact_name="Maria Lopez",
    sender=CUSTOMER_PHONE,
):
    value = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": display_phone,
            "phone_number_id": phone_number_id,
        },
    }
    if messages is not None:
        value["contacts"] = [{"profile": {"name": contact_name}, "wa_id": sender}]
        value["messages"] = messages
    if statuses is not None:
        value["statuses"] = statuses
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA-1", "changes": [{"field": "messages", "value": value}]}],
    }


def status_item(external_id, status, *, recipient=CUSTOMER_PHONE):
    return {"id": external_id, "status": status, "timestamp": "1700000100", "recipient_id": recipient}


def create_rule(db_session, workspace, *, name, trigger, conditions=None, actions=None, status=None, created_at=None):
    rule = AutomationRule(
        workspace_id=workspace.id,
        name=name,
        trigger=trigger,
        conditions=conditions or {},
        actions=actions or [],
        status=status or AutomationRuleStatus.active,
        execution_count=0,
        created_at=created_at or datetime.now(UTC),
    )
    db_session.add(rule)
    db_session.commit()
    db_session.refresh(rule)
    return rule
