from pydantic import BaseModel


class WebhookAck(BaseModel):
    # processed | ignored | already_processed
    status: str
    event_id: str
