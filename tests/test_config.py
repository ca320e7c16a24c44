"""
test_config.py — Tests for rfpflow/config.py

Called by: pytest
Depends on: rfpflow/config.py
"""

from rfpflow.config import Settings, config_warnings


def test_defaults():
    s = Settings(database_url="sqlite:///./rfpflow.db")
    assert s.is_sqlite is True
    assert s.smtp_port == 587
    assert s.imap_port == 993
    assert s.imap_mailbox == "INBOX"


def test_unconfigured_warnings():
    s = Settings(database_url="sqlite://", anthropic_api_key="", smtp_host="", imap_host="")
    warnings = config_warnings(s)
    assert any("SQLite" in w for w in warnings)
    assert any("ANTHROPIC_API_KEY" in w for w in warnings)
    assert any("SMTP" in w for w in warnings)
    assert any("IMAP" in w for w in warnings)


def test_fully_configured_has_no_warnings():
    s = Settings(
        database_url="postgresql://u:p@db/rfpflow",
        anthropic_api_key="sk-test",
        smtp_host="smtp.test", smtp_user="u", smtp_password="p",
        imap_host="imap.test", imap_user="u", imap_password="p",
    )
    assert s.smtp_configured and s.imap_configured
    assert config_warnings(s) == []
