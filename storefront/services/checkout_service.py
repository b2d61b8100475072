# storefront/services/checkout_service.py
from typing import Any, Callable, Dict, Iterable, Optional
from urllib.parse import quote

from storefront.domain.schemas import CartItem
from storefront.services.cart_engine import CartEngine
from storefront.services.notification_service import NotificationService
from storefront.utils.settings import WHATSAPP_NUMBER
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def format_rupiah(value: int) -> str:
    #format id-ID: kropka jako separator tysiecy, bez groszy
    sign = "-" if value < 0 else ""
    return f"{sign}Rp {abs(int(value)):,}".replace(",", ".")


def build_checkout_message(items: Iterable[CartItem]) -> str:
    items = list(items)
    lines = ["Halo kak, saya mau beli item berikut:"]
    for n, item in enumerate(items, start=1):
        subtotal = item.price * item.cart_qty
        lines.append(f"{n}. {item.name} x{item.cart_qty} - {format_rupiah(subtotal)}")

    total = sum(i.price * i.cart_qty for i in items)
    lines.append("")
    lines.append(f"Total: {format_rupiah(total)}")
    lines.append("Apakah itemnya masih ada? Transfernya kemana ya kak?")
    return "\n".join(lines)


def build_whatsapp_link(message: str, number: str = WHATSAPP_NUMBER) -> str:
    return f"https://wa.me/{number}?text={quote(message, safe='')}"


def build_inquiry_link(item_name: str, number: str = WHATSAPP_NUMBER) -> str:
    message = (
        f'Halo kak, saya mau beli item "{item_name}", apakah itemnya masih ada? '
        "Transfernya kemana ya kak?"
    )
    return build_whatsapp_link(message, number)


class CheckoutDispatcher:
    """
    Checkout = wiadomosc z zaznaczonymi pozycjami przekazana do WhatsApp.
    Nie powstaje zaden rekord zamowienia po stronie serwera.
    """

    def __init__(
        self,
        number: str = WHATSAPP_NUMBER,
        notify: Optional[Callable[[str, int, int], None]] = None,
    ):
        self.number = number
        self.notify = notify or NotificationService.send_checkout_notification

    def dispatch(self, cart_key: str, engine: CartEngine) -> Dict[str, Any]:
        with engine.lock:
            selected = engine.selected_items()
            total = engine.derived_total()
        if not selected:
            raise ValueError("No items selected for checkout")

        message = build_checkout_message(selected)
        count = sum(i.cart_qty for i in selected)

        logger.info(f"Checkout koszyka {cart_key}: {len(selected)} pozycji, total {total}")
        try:
            self.notify(cart_key, count, total)
        except Exception as e:
            #powiadomienie jest tylko logiem, link do WhatsApp i tak wraca do klienta
            logger.warning(f"Powiadomienie o checkoucie {cart_key} nie wyslane: {e}")

        return {
            "message": message,
            "url": build_whatsapp_link(message, self.number),
            "total": total,
            "count": count,
        }
