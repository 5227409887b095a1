"""
Log redaction for the signing key.

Only the key actually configured for this process is masked, with or
without its 0x prefix. Nothing is installed when no key is configured
(the node signs for an unlocked account).
"""

import logging
from typing import Optional

REDACTED = "[REDACTED]"


class KeyMaskingFilter(logging.Filter):

    def __init__(self, private_key: str):
        super().__init__()
        key = private_key[2:] if private_key[:2].lower() == "0x" else private_key
        self._needles = {key, key.lower(), key.upper()} if key else set()

    def _mask(self, text: str) -> str:
        for needle in self._needles:
            text = text.replace("0x" + needle, REDACTED).replace(needle, REDACTED)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = self._mask(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def install_key_masking(private_key: str, handlers=None) -> Optional[KeyMaskingFilter]:
    """Attach a KeyMaskingFilter to the given handlers (root handlers by default)."""
    if not private_key:
        return None
    key_filter = KeyMaskingFilter(private_key)
    for handler in (logging.root.handlers if handlers is None else handlers):
        handler.addFilter(key_filter)
    return key_filter
