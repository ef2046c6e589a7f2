from __future__ import annotations

from datetime import datetime, timezone
from html import escape

from .types import SupplyChangeEvent


def format_tokens(amount: int | None) -> str:
    if amount is None:
        return "n/a"
    return f"{amount:,}"


def format_units(amount: int, decimals: int) -> str:
    """Render a raw integer amount as a decimal token quantity."""
    if decimals <= 0:
        return format_tokens(amount)
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    if not frac_text:
        return f"{sign}{whole:,}"
    return f"{sign}{whole:,}.{frac_text}"


def observed_at_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _amount_line(amount: int, decimals: int) -> str:
    return f"{format_tokens(amount)} ({format_units(amount, decimals)} tokens)"


def format_event_message(event: SupplyChangeEvent) -> str:
    name = escape(event.asset_name)
    address = escape(event.asset_address)

    lines = [
        "🚨 <b>Token total supply change detected</b>",
        "",
        f"🪙 <b>Asset:</b> {name} (<code>{address}</code>)",
        f"📈 <b>New total supply:</b> {_amount_line(event.new_total_supply, event.decimals)}",
        f"📉 <b>Previous total supply:</b> {_amount_line(event.old_total_supply, event.decimals)}",
    ]
    if event.target_total_supply is not None:
        lines.append(
            f"🎯 <b>Target threshold:</b> {_amount_line(event.target_total_supply, event.decimals)}"
        )
    lines.append("")
    lines.append("<b>Reasons:</b>")
    lines.extend(f"• {escape(reason)}" for reason in event.trigger_reasons)
    lines.append("")
    lines.append(f"🕒 <b>Observed at:</b> {observed_at_iso(event.observed_at)}")
    return "\n".join(lines)


def format_callback_message(event: SupplyChangeEvent) -> str:
    return (
        f"asset {event.asset_name} total supply changed: "
        f"{event.old_total_supply} -> {event.new_total_supply}"
    )
