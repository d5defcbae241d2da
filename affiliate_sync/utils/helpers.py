from datetime import UTC, datetime


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_currency(amount: float) -> str:
    # Rupiah with dot thousands separators, e.g. "Rp 1.725.000"
    return "Rp " + f"{round(amount):,}".replace(",", ".")


def build_referral_link(base_url: str, code: str | None) -> str:
    if not code:
        return ""
    return f"{base_url}?ref={code}"


def format_number(value: int) -> str:
    return f"{value:,}".replace(",", ".")
