"""Utility script to load a demo recipient, preferences and templates."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from app.application.use_cases.preferences import upsert_preference
from app.application.use_cases.templates import create_template
from app.application.use_cases.users import create_user
from app.domain.entities import NotificationChannel, NotificationType
from app.domain.errors import NotificationError
from app.infrastructure.database import SessionLocal, initialize_database

DEMO_TEMPLATES = (
    {
        "template_id": "order_confirmed",
        "channel": NotificationChannel.EMAIL,
        "language": "en",
        "subject": "Order {{orderId}}",
        "body": "Order {{orderId}} confirmed",
    },
    {
        "template_id": "order_confirmed",
        "channel": NotificationChannel.EMAIL,
        "language": "es",
        "subject": "Pedido {{orderId}}",
        "body": "Pedido {{orderId}} confirmado",
    },
    {
        "template_id": "order_confirmed",
        "channel": NotificationChannel.SMS,
        "language": "en",
        "subject": None,
        "body": "Order {{orderId}} confirmed",
    },
)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the seed script."""

    parser = argparse.ArgumentParser(description="Seed demo data for the notification service.")
    parser.add_argument("--name", default="Demo User", help="Nombre del destinatario de prueba")
    parser.add_argument("--email", default="demo@example.com", help="Correo del destinatario")
    parser.add_argument("--phone", default=None, help="Teléfono en formato internacional (opcional)")
    parser.add_argument("--timezone", default=None, help="Zona horaria IANA del destinatario")
    return parser.parse_args()


def main() -> None:
    """Create the demo data using the provided command line arguments."""

    args = parse_args()
    initialize_database()

    session = SessionLocal()
    try:
        user = create_user(
            session,
            name=args.name,
            email=args.email,
            phone=args.phone,
            timezone=args.timezone,
        )
        for channel in (NotificationChannel.EMAIL, NotificationChannel.IN_APP):
            upsert_preference(
                session,
                user_id=user.id,
                notification_type=NotificationType.PROMOTIONAL,
                channel=channel,
                enabled=True,
                max_per_day=3,
            )
        templates = [create_template(session, **data) for data in DEMO_TEMPLATES]
    except NotificationError as exc:
        session.rollback()
        raise SystemExit(f"No se pudieron crear los datos de prueba: {exc}") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Error al guardar los datos en la base de datos: {exc}") from exc
    else:
        print(
            "Datos de prueba creados:\n"
            f"  Usuario: {user.id} ({user.email})\n"
            f"  Plantillas: {', '.join(f'{t.template_id}/{t.channel.value}/{t.language} v{t.version}' for t in templates)}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
