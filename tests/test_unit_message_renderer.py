from paynotify.services.message_renderer import (
    NAME_PLACEHOLDER,
    absences_text,
    holidays_text,
    render_payment_message,
)


def _render(**overrides):
    params = dict(
        name="Ana",
        amount="1500.00",
        absences=0,
        holidays_worked=0,
        currency_prefix="US$",
        invoice_emails=["billing@example.com"],
        signature="Payroll Team",
    )
    params.update(overrides)
    return render_payment_message(
        params.pop("name"), params.pop("amount"), params.pop("absences"), params.pop("holidays_worked"), **params
    )


def test_pluralization_of_absences():
    assert absences_text(0) == "*no absences*"
    assert absences_text(1) == "*1 absence*"
    assert absences_text(4) == "*4 absences*"


def test_pluralization_of_holidays():
    assert holidays_text(0) == "*did not work on any holiday*"
    assert holidays_text(1) == "worked on *1 holiday*"
    assert holidays_text(2) == "worked on *2 holidays*"


def test_message_contains_personal_fields():
    text = _render(absences=1, holidays_worked=2)
    assert "*Hi, Ana!*" in text
    assert "*Amount to be paid this month:* US$1500.00" in text
    assert "*1 absence*" in text
    assert "worked on *2 holidays*" in text
    assert "*billing@example.com*" in text
    assert ":white_check_mark:" in text
    assert text.endswith("_Payroll Team_")


def test_amount_shown_verbatim():
    assert "US$1.234,56" in _render(amount="1.234,56")


def test_missing_name_uses_placeholder():
    assert f"*Hi, {NAME_PLACEHOLDER}!*" in _render(name=None)


def test_no_invoice_emails_omits_paragraph():
    text = _render(invoice_emails=[])
    assert "send the invoice to" not in text


def test_rendering_is_deterministic():
    assert _render() == _render()
