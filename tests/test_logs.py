import logging

from lacat.logs import REDACTED, KeyMaskingFilter, install_key_masking

KEY = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
OTHER_HEX = "5fbdb2315678afecb367f032d93f642f64180aa35fbdb2315678afecb367f032"


def make_record(msg, *args):
    return logging.LogRecord("lacat.test", logging.INFO, __file__, 1, msg, args, None)


def test_configured_key_is_masked_with_and_without_prefix():
    key_filter = KeyMaskingFilter("0x" + KEY)

    record = make_record(f"signing with 0x{KEY}")
    assert key_filter.filter(record)
    assert record.getMessage() == f"signing with {REDACTED}"

    record = make_record("key=%s", KEY.upper())
    key_filter.filter(record)
    assert record.getMessage() == f"key={REDACTED}"
    assert record.args is None


def test_other_hex_is_left_alone():
    key_filter = KeyMaskingFilter(KEY)
    record = make_record("tx %s", OTHER_HEX)
    key_filter.filter(record)
    assert record.getMessage() == f"tx {OTHER_HEX}"
    assert record.args == (OTHER_HEX,)


def test_nothing_installed_without_a_key():
    handler = logging.NullHandler()
    assert install_key_masking("", handlers=[handler]) is None
    assert handler.filters == []
    assert KeyMaskingFilter("0x")._needles == set()


def test_installed_filter_masks_handler_output(caplog):
    key_filter = install_key_masking(KEY, handlers=[caplog.handler])
    try:
        with caplog.at_level(logging.INFO, logger="lacat.test"):
            logging.getLogger("lacat.test").info(f"loaded key 0x{KEY}")
    finally:
        caplog.handler.removeFilter(key_filter)
    assert KEY not in caplog.text
    assert REDACTED in caplog.text
