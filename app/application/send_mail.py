from app.domain.entities import MailMessage
from app.domain.errors import DeliveryFailure
from app.domain.ports.email_port import EmailPort


async def send_mail(email_port: EmailPort, message: MailMessage, request_id: str) -> None:
    try:
        await email_port.send(message, request_id=request_id)
    except DeliveryFailure:
        raise
    except Exception as exc:  # noqa: BLE001
        raise DeliveryFailure() from exc
