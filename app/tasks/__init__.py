from app.tasks.webhooks import process_whatsapp_payload  # noqa: F401
