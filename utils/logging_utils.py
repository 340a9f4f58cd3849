def mask_value(value: str) -> str:
    """Mask e-mails and account numbers before they reach a log line or a response."""
    if not isinstance(value, str):
        return value
    if "@" in value:
        name, _, domain = value.partition("@")
        return (name[:2] + "***@" + domain) if name else "***@" + domain
    if len(value) > 8:
        return "****" + value[-4:]
    return "***"
