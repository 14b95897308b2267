"""
Text presentation of the admin queue.

Plain-text counterparts of the dashboard cards: the queue table, the
priority tooltip, a WhatsApp share link and a printable invoice.
"""

import sys
from datetime import datetime, timezone
from typing import List, Optional, Sequence, TextIO
from urllib.parse import quote

from kitchen_triage.models.order import Order
from kitchen_triage.models.priority import ScoredOrder
from kitchen_triage.scoring.scorer import explain_priority
from kitchen_triage.triage.capabilities import Renderer
from kitchen_triage.triage.transitions import next_actions


def format_inr(amount) -> str:
    """Rupees with Indian digit grouping: 123456.5 -> ₹1,23,456.50."""
    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        value = 0.0
    sign = "-" if value < 0 else ""
    whole, frac = f"{abs(value):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}₹{whole}.{frac}"


def time_ago(created_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    if created_at is None:
        return "just now"
    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    mins = max(0, int((now - created_at).total_seconds() // 60))
    if mins < 1:
        return "just now"
    if mins < 60:
        return f"{mins}m ago"
    return f"{mins // 60}h ago"


def whatsapp_share_url(order: Order) -> str:
    """Share link with the order summary; the admin picks the contact in WhatsApp."""
    lines = [f"Order #{order.id}", f"Status: {order.status.value}", ""]
    lines += [f"• {i.name} × {i.quantity}" for i in order.items]
    lines += ["", f"Total: {format_inr(order.total)} ({order.payment_method or 'COD/Prepaid'})"]
    c = order.customer
    lines += ["", f"Customer: {c.name}", f"Phone: {c.phone}", f"Address: {c.address}"]
    return "https://wa.me/?text=" + quote("\n".join(lines), safe="")


def invoice_text(order: Order, business_name: str = "Ghar ka Khana") -> str:
    created = order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else "-"
    rows = [
        [i.name, str(i.quantity), format_inr(i.price), format_inr(i.amount)]
        for i in order.items
    ]
    c = order.customer
    parts = [
        business_name,
        f"Invoice for Order #{order.id} • {created}",
        "",
        f"{c.name} ({c.phone})",
        c.address,
        "",
        format_table(["Item", "Qty", "Price", "Amount"], rows),
        "",
        f"Total: {format_inr(order.total)}",
    ]
    return "\n".join(parts)


def format_table(headers: List[str], rows: List[List[str]]) -> str:
    widths = [len(h) for h in headers]
    for r in rows:
        for i, cell in enumerate(r):
            widths[i] = max(widths[i], len(cell))

    def fmt_row(cols: List[str]) -> str:
        return " | ".join(col.ljust(widths[i]) for i, col in enumerate(cols))

    sep = "-+-".join("-" * w for w in widths)
    return "\n".join([fmt_row(headers), sep] + [fmt_row(r) for r in rows])


class TextRenderer(Renderer):
    """Writes the visible queue as a table, one row per order."""

    def __init__(self, stream: Optional[TextIO] = None, now_fn=None):
        self.stream = stream or sys.stdout
        self.now_fn = now_fn
        self.last_output = ""

    def render(self, orders: Sequence[ScoredOrder]) -> None:
        if not orders:
            self.last_output = "No orders found."
        else:
            now = self.now_fn() if self.now_fn else None
            rows = [
                [
                    f"#{s.order.id}",
                    s.order.status.value,
                    f"⚡ {s.priority_score:.1f}",
                    format_inr(s.order.total),
                    time_ago(s.order.created_at, now),
                    s.order.customer.name,
                    "/".join(a.value for a in next_actions(s.order.status)) or "-",
                    explain_priority(s.explanation),
                ]
                for s in orders
            ]
            self.last_output = format_table(
                ["Order", "Status", "Priority", "Total", "Placed", "Customer", "Next", "Why"],
                rows,
            )
        self.stream.write(self.last_output + "\n")
