"""
Email Service

Transactional e-mail through the Resend HTTP API. Currently only the
abandoned-cart recovery message is sent from the backend.
"""
from html import escape
from typing import Any, Dict, List, Optional, Tuple, Union

import aiohttp

from app.config import get_settings
from app.utils.helpers import format_sek
from app.utils.logger import log
from app.utils.result import ErrorType, ServiceResult


def _item_count_phrase(count: int, is_swedish: bool) -> str:
    if is_swedish:
        return f"{count} {'produkt' if count == 1 else 'produkter'}"
    return f"{count} {'item' if count == 1 else 'items'}"


def build_abandoned_cart_email(
    cart_data: Dict[str, Any],
    locale: str = "sv",
    app_url: Optional[str] = None,
    support_email: Optional[str] = None,
) -> Tuple[str, str, str]:
    """
    Render the recovery e-mail.

    cart_data: {items: [{name, quantity, price}], total, recovery_token}
    Returns (subject, html, text).
    """
    settings = get_settings()
    app_url = (app_url or settings.app_url).rstrip("/")
    support_email = support_email or settings.support_email
    is_swedish = locale != "en"

    items: List[Dict[str, Any]] = cart_data.get("items") or []
    recovery_url = f"{app_url}/cart/recover?token={cart_data['recovery_token']}"
    item_count = sum(int(item.get("quantity", 0)) for item in items)
    total = format_sek(cart_data.get("total", 0))

    if is_swedish:
        subject = "Du har fortfarande produkter i din varukorg! 🛍️"
        heading = "Din varukorg väntar!"
        greeting = "Hej!"
        intro = (
            f"Du lämnade {_item_count_phrase(item_count, True)} i din varukorg. "
            f"Vi har sparat {'den' if item_count == 1 else 'dem'} åt dig!"
        )
        tip_title = "Visste du?"
        tip = ("Våra mest populära produkter brukar ta slut snabbt. "
               "Slutför din order nu för att säkra dina favoriter!")
        items_title, col_product, col_qty, col_price = "Dina produkter:", "Produkt", "Antal", "Pris"
        total_label = "Totalt"
        cta = "Slutför ditt köp"
        perks = "✓ Fri frakt över 500 kr<br>✓ 30 dagars öppet köp<br>✓ Säkra betalningar"
        questions = "Har du några frågor? Kontakta oss gärna på"
        sign_off = "Med vänliga hälsningar,"
        footer = "Du får detta mail eftersom du har produkter i din varukorg hos Fortune Essence."
    else:
        subject = "You still have items in your cart! 🛍️"
        heading = "Your Cart is Waiting!"
        greeting = "Hello!"
        intro = (
            f"You left {_item_count_phrase(item_count, False)} in your cart. "
            f"We've saved {'it' if item_count == 1 else 'them'} for you!"
        )
        tip_title = "Did you know?"
        tip = ("Our most popular products tend to sell out quickly. "
               "Complete your order now to secure your favorites!")
        items_title, col_product, col_qty, col_price = "Your Items:", "Product", "Quantity", "Price"
        total_label = "Total"
        cta = "Complete Your Purchase"
        perks = "✓ Free shipping over 500 kr<br>✓ 30-day return policy<br>✓ Secure payments"
        questions = "Have any questions? Feel free to contact us at"
        sign_off = "Best regards,"
        footer = "You are receiving this email because you have items in your cart at Fortune Essence."

    rows = "".join(
        f"""
            <tr>
              <td style="padding: 10px; border-bottom: 1px solid #eee;">{escape(str(item.get('name', '')))}</td>
              <td style="padding: 10px; border-bottom: 1px solid #eee; text-align: center;">{item.get('quantity', 0)}</td>
              <td style="padding: 10px; border-bottom: 1px solid #eee; text-align: right;">{format_sek(item.get('price', 0))}</td>
            </tr>"""
        for item in items
    )

    html = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: linear-gradient(135deg, #8B4513 0%, #D2691E 100%); color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
    .content {{ background: #fff; padding: 30px; border: 1px solid #ddd; border-top: none; }}
    .cart-items {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
    .cart-items th {{ background: #f5f5f5; padding: 10px; text-align: left; border-bottom: 2px solid #ddd; }}
    .total {{ font-size: 18px; font-weight: bold; color: #8B4513; margin: 20px 0; }}
    .cta-button {{ display: inline-block; background: #8B4513; color: white; padding: 15px 40px; text-decoration: none; border-radius: 25px; font-weight: bold; }}
    .footer {{ background: #f5f5f5; padding: 20px; text-align: center; font-size: 12px; color: #666; border-radius: 0 0 10px 10px; }}
    .highlight {{ background: #fff3cd; padding: 15px; border-left: 4px solid #ffc107; margin: 20px 0; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>🛍️ {heading}</h1>
    </div>
    <div class="content">
      <p>{greeting}</p>
      <p>{intro}</p>
      <div class="highlight"><strong>💡 {tip_title}</strong> {tip}</div>
      <h3>{items_title}</h3>
      <table class="cart-items">
        <thead>
          <tr>
            <th>{col_product}</th>
            <th style="text-align: center;">{col_qty}</th>
            <th style="text-align: right;">{col_price}</th>
          </tr>
        </thead>
        <tbody>{rows}
        </tbody>
      </table>
      <div class="total">{total_label}: {total}</div>
      <div style="text-align: center; margin: 30px 0;">
        <a href="{recovery_url}" class="cta-button">🛒 {cta}</a>
      </div>
      <p style="color: #666; font-size: 14px;">{perks}</p>
      <p style="margin-top: 30px;">{questions} <a href="mailto:{support_email}">{support_email}</a></p>
      <p>{sign_off}<br><strong>Fortune Essence</strong></p>
    </div>
    <div class="footer">
      <p>{footer}</p>
      <p>Fortune Essence AB | Sweden<br><a href="{app_url}" style="color: #8B4513;">{app_url.split('://')[-1]}</a></p>
    </div>
  </div>
</body>
</html>
"""

    item_lines = "\n".join(
        f"- {item.get('name', '')} x{item.get('quantity', 0)} - {format_sek(item.get('price', 0))}"
        for item in items
    )
    text = (
        f"{heading}\n\n"
        f"{greeting}\n\n"
        f"{intro.split('. ')[0]}.\n\n"
        f"{items_title}\n{item_lines}\n\n"
        f"{total_label}: {total}\n\n"
        f"{cta}: {recovery_url}\n\n"
        f"{sign_off}\nFortune Essence\n"
    )

    return subject, html, text


class EmailService:
    """Sends e-mail through Resend"""

    def __init__(self, api_key: Optional[str] = None, timeout_seconds: float = 30):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.api_url = settings.resend_api_url
        self.from_header = f"{settings.email_from_name} <{settings.email_from_address}>"
        self.timeout_seconds = timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send_email(
        self,
        to: Union[str, List[str]],
        subject: str,
        html: str,
        text: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> ServiceResult:
        """POST one message to Resend. Returns {message_id} on success."""
        if not self.configured:
            log.error("Email API key not configured")
            return ServiceResult.fail(ErrorType.UPSTREAM, "Email service not configured")

        payload = {
            "from": self.from_header,
            "to": to if isinstance(to, list) else [to],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text
        if reply_to:
            payload["reply_to"] = reply_to

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.api_url, json=payload, headers=headers) as response:
                    if response.status >= 400:
                        body = await response.text()
                        log.error(f"Email send failed with status {response.status}: {body}")
                        return ServiceResult.fail(ErrorType.UPSTREAM, f"Failed to send email: {body}")

                    data = await response.json()
        except Exception as e:
            log.error(f"Email service error: {type(e).__name__}: {e}")
            return ServiceResult.fail(ErrorType.UPSTREAM, f"Email service error: {e}")

        return ServiceResult.ok({"message_id": data.get("id")})

    async def send_abandoned_cart_recovery(
        self,
        to_email: str,
        cart_data: Dict[str, Any],
        locale: str = "sv",
    ) -> ServiceResult:
        subject, html, text = build_abandoned_cart_email(cart_data, locale)
        return await self.send_email(to_email, subject, html, text)
