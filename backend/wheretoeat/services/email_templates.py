"""
Booking email templates.

Rendering works on frozen snapshots taken while the request still holds its database session, so
messages can be built and sent from a background thread. Every user-supplied value is HTML-escaped
before it is embedded.
"""
from dataclasses import dataclass
from html import escape

from wheretoeat.services.action_tokens import ActionSigner
from wheretoeat.services.booking_states import WAITING, status_label


@dataclass(frozen=True)
class RestaurantSnapshot:
    id: int
    name: str
    address: str | None = None
    public_email: str | None = None

    @classmethod
    def of(cls, restaurant) -> "RestaurantSnapshot":
        return cls(
            id=restaurant.id,
            name=restaurant.name,
            address=restaurant.address,
            public_email=restaurant.public_email,
        )


@dataclass(frozen=True)
class BookingSnapshot:
    id: int
    date: str
    time: str
    guests: int
    children: int
    first_name: str
    last_name: str
    email: str
    phone: str
    status: str
    cancel_token: str
    special_request: str | None = None

    @classmethod
    def of(cls, booking) -> "BookingSnapshot":
        return cls(
            id=booking.id,
            date=booking.date,
            time=booking.time,
            guests=booking.guests,
            children=booking.children or 0,
            first_name=booking.first_name,
            last_name=booking.last_name,
            email=booking.email,
            phone=booking.phone,
            status=booking.status,
            cancel_token=booking.cancel_token,
            special_request=booking.special_request,
        )


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


def format_date(date_str: str) -> str:
    """2024-12-25 -> 25.12.2024"""
    parts = date_str.split("-")
    if len(parts) != 3:
        return date_str
    year, month, day = parts
    return f"{day}.{month}.{year}"


def guests_label(guests: int, children: int = 0) -> str:
    label = f"{guests} adulte{'s' if guests > 1 else ''}"
    if children:
        label += f" + {children} enfant{'s' if children > 1 else ''}"
    return label


def _base_html(content: str, base_url: str) -> str:
    site = escape(base_url)
    host = escape(base_url.split("://", 1)[-1])
    return f"""<!DOCTYPE html>
<html lang="fr">
<head><meta charset="UTF-8"><meta name="viewport" content="width=device-width,initial-scale=1.0"></head>
<body style="margin:0;padding:0;background-color:#f4f4f5;font-family:Arial,Helvetica,sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" style="background-color:#f4f4f5;padding:32px 16px;">
    <tr><td align="center">
      <table width="600" cellpadding="0" cellspacing="0" style="background-color:#ffffff;border-radius:8px;overflow:hidden;">
        <tr><td style="background-color:#18181b;padding:24px 32px;text-align:center;">
          <span style="color:#ffffff;font-size:24px;font-weight:bold;letter-spacing:1px;">WhereToEat</span>
        </td></tr>
        <tr><td style="padding:32px;">
          {content}
        </td></tr>
        <tr><td style="background-color:#f4f4f5;padding:16px 32px;text-align:center;font-size:12px;color:#71717a;">
          Cet email a été envoyé automatiquement par WhereToEat.<br>
          <a href="{site}" style="color:#71717a;">{host}</a>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def _detail_row(label: str, value: str) -> str:
    return (
        "<tr>"
        f'<td style="padding:8px 12px;font-weight:600;color:#3f3f46;white-space:nowrap;">{escape(label)}</td>'
        f'<td style="padding:8px 12px;color:#18181b;">{escape(value)}</td>'
        "</tr>"
    )


def _details_table(rows: list[str]) -> str:
    return (
        '<table width="100%" cellpadding="0" cellspacing="0" style="border:1px solid #e4e4e7;border-radius:6px;margin:16px 0;">'
        + "".join(rows)
        + "</table>"
    )


def _slot_rows(booking: BookingSnapshot, restaurant: RestaurantSnapshot) -> list[str]:
    return [
        _detail_row("Restaurant", restaurant.name),
        _detail_row("Date", format_date(booking.date)),
        _detail_row("Heure", booking.time),
        _detail_row("Personnes", guests_label(booking.guests, booking.children)),
    ]


def _paragraph(html: str, size: int = 15) -> str:
    return f'<p style="color:#71717a;font-size:{size}px;">{html}</p>'


def _special_request(booking: BookingSnapshot) -> str:
    if not booking.special_request:
        return ""
    return _paragraph(f"<strong>Demande spéciale :</strong> {escape(booking.special_request)}", 14)


def _address(restaurant: RestaurantSnapshot) -> str:
    if not restaurant.address:
        return ""
    return _paragraph(f"<strong>Adresse :</strong> {escape(restaurant.address)}", 14)


def _button(url: str, label: str, color: str) -> str:
    return (
        f'<a href="{escape(url)}" style="display:inline-block;padding:12px 24px;background-color:{color};'
        f'color:#ffffff;text-decoration:none;border-radius:6px;font-weight:600;font-size:15px;">{escape(label)}</a>'
    )


def _title(text: str) -> str:
    return f'<h1 style="margin:0 0 16px;font-size:20px;color:#18181b;">{escape(text)}</h1>'


# --- Client: request received ---


def booking_received(booking: BookingSnapshot, restaurant: RestaurantSnapshot, signer: ActionSigner) -> EmailMessage:
    is_waiting = booking.status == WAITING
    name = escape(restaurant.name)
    if is_waiting:
        title = "Votre réservation est en liste d'attente"
        intro = (
            f"Votre demande de réservation chez <strong>{name}</strong> a bien été enregistrée. "
            "Le restaurant est complet sur ce créneau, votre réservation est placée en "
            "<strong>liste d'attente</strong>. Vous serez informé si une place se libère."
        )
        subject = f"Liste d'attente - {restaurant.name}"
    else:
        title = "Votre réservation est en attente de validation"
        intro = (
            f"Votre demande de réservation chez <strong>{name}</strong> a bien été enregistrée. "
            "Le restaurant va examiner votre demande et vous recevrez un email de confirmation."
        )
        subject = f"Réservation en attente - {restaurant.name}"
    rows = _slot_rows(booking, restaurant) + [_detail_row("Statut", status_label(booking.status))]
    content = (
        _title(title)
        + _paragraph(intro)
        + _details_table(rows)
        + _special_request(booking)
        + _paragraph("Vous ne pouvez plus venir ?", 14)
        + f'<p style="text-align:center;">{_button(signer.cancel_url(booking.cancel_token), "Annuler ma réservation", "#dc2626")}</p>'
        + _paragraph("À bientôt !", 14)
    )
    return EmailMessage(booking.email, subject, _base_html(content, signer.base_url))


# --- Restaurant: new booking with signed action links ---


def new_booking_for_restaurant(
    booking: BookingSnapshot, restaurant: RestaurantSnapshot, signer: ActionSigner
) -> EmailMessage | None:
    if not restaurant.public_email:
        return None
    rows = [
        _detail_row("Nom", f"{booking.first_name} {booking.last_name}"),
        _detail_row("Email", booking.email),
        _detail_row("Téléphone", booking.phone),
        _detail_row("Date", format_date(booking.date)),
        _detail_row("Heure", booking.time),
        _detail_row("Personnes", guests_label(booking.guests, booking.children)),
        _detail_row("Statut", status_label(booking.status)),
    ]
    if booking.special_request:
        rows.append(_detail_row("Demande spéciale", booking.special_request))
    token = booking.cancel_token
    buttons = "".join(
        f'<td align="center" style="padding:4px;">{_button(signer.action_url(token, action), label, color)}</td>'
        for action, label, color in (
            ("confirm", "ACCEPTER", "#16a34a"),
            ("refuse", "REFUSER", "#dc2626"),
            ("waiting", "LISTE D'ATTENTE", "#71717a"),
        )
    )
    content = (
        _title("Nouvelle réservation")
        + _paragraph(
            f"Une nouvelle réservation a été effectuée sur votre restaurant <strong>{escape(restaurant.name)}</strong>."
        )
        + _details_table(rows)
        + _paragraph("Gérez cette réservation directement :", 14)
        + f'<table width="100%" cellpadding="0" cellspacing="0" style="margin:16px 0;"><tr>{buttons}</tr></table>'
    )
    subject = f"Nouvelle réservation - {booking.first_name} {booking.last_name}"
    return EmailMessage(restaurant.public_email, subject, _base_html(content, signer.base_url))


# --- Client: status changes ---


def booking_confirmed(booking: BookingSnapshot, restaurant: RestaurantSnapshot, signer: ActionSigner) -> EmailMessage:
    content = (
        _title("Votre réservation est confirmée !")
        + _paragraph(
            f"Bonne nouvelle ! Votre réservation chez <strong>{escape(restaurant.name)}</strong> "
            "a été confirmée par le restaurant."
        )
        + _details_table(_slot_rows(booking, restaurant))
        + _special_request(booking)
        + _address(restaurant)
        + _paragraph("Un empêchement ? Merci de prévenir le restaurant :", 14)
        + f'<p style="text-align:center;">{_button(signer.cancel_url(booking.cancel_token), "Annuler ma réservation", "#dc2626")}</p>'
        + _paragraph("À bientôt !", 14)
    )
    subject = f"Votre réservation est confirmée - {restaurant.name}"
    return EmailMessage(booking.email, subject, _base_html(content, signer.base_url))


def booking_waiting(booking: BookingSnapshot, restaurant: RestaurantSnapshot, signer: ActionSigner) -> EmailMessage:
    content = (
        _title("Votre réservation est en liste d'attente")
        + _paragraph(
            f"Votre réservation chez <strong>{escape(restaurant.name)}</strong> a été placée en liste d'attente. "
            "Le restaurant vous contactera si une place se libère."
        )
        + _details_table(_slot_rows(booking, restaurant))
        + _special_request(booking)
        + _paragraph("Si vous ne souhaitez plus attendre, vous pouvez annuler votre réservation :", 14)
        + f'<p style="text-align:center;">{_button(signer.cancel_url(booking.cancel_token), "Annuler ma réservation", "#dc2626")}</p>'
    )
    subject = f"Votre réservation est en liste d'attente - {restaurant.name}"
    return EmailMessage(booking.email, subject, _base_html(content, signer.base_url))


def booking_cancelled(booking: BookingSnapshot, restaurant: RestaurantSnapshot, signer: ActionSigner) -> EmailMessage:
    """Sent for both refused and cancelled."""
    name = escape(restaurant.name)
    content = (
        _title("Information concernant votre réservation")
        + _paragraph(f"Nous sommes désolés, votre réservation chez <strong>{name}</strong> n'a pas pu être maintenue.")
        + _details_table(_slot_rows(booking, restaurant))
        + _paragraph(
            f"Le restaurant <strong>{name}</strong> sera ravi de vous accueillir une prochaine fois. "
            "N'hésitez pas à réserver à nouveau !"
        )
        + f'<p style="text-align:center;">{_button(signer.restaurant_url(restaurant.id), "Réserver à nouveau", "#18181b")}</p>'
    )
    subject = f"Information concernant votre réservation - {restaurant.name}"
    return EmailMessage(booking.email, subject, _base_html(content, signer.base_url))


# --- Client: reminder the day before ---


def booking_reminder(booking: BookingSnapshot, restaurant: RestaurantSnapshot, signer: ActionSigner) -> EmailMessage:
    content = (
        _title("Rappel de votre réservation")
        + _paragraph(
            f"Nous vous rappelons votre réservation de <strong>demain</strong> chez <strong>{escape(restaurant.name)}</strong>."
        )
        + _details_table(_slot_rows(booking, restaurant))
        + _address(restaurant)
        + _paragraph("À demain !", 14)
    )
    subject = f"Rappel - Votre réservation demain chez {restaurant.name}"
    return EmailMessage(booking.email, subject, _base_html(content, signer.base_url))
