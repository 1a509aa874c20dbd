from pydantic import BaseModel


class QrCodeOut(BaseModel):
    qr_code_url: str
    qr_token: str
    order_reference: str
    verify_url: str
    expires_in: int  # minutes
