import pytest

from redirex.rules import (
    RuleContain,
    RuleEqual,
    RuleError,
    RuleGTDate,
    RuleRedirect,
    contain_plugin,
    equal_plugin,
    gtdate_plugin,
)


class RecordingEndPoint:
    def __init__(self):
        self.done = []

    def write_done(self, data):
        self.done.append(data)


class BrokenEndPoint:
    def write_done(self, data):
        raise OSError("connection lost")


def test_redirect_writes_target():
    ep = RecordingEndPoint()
    RuleRedirect("https://mail.ru", ep).examine({})
    assert ep.done == ["https://mail.ru"]


def test_redirect_without_endpoint_fails():
    with pytest.raises(RuleError):
        RuleRedirect("https://mail.ru", None).examine({})


def test_redirect_send_error():
    with pytest.raises(RuleError, match="send error"):
        RuleRedirect("https://mail.ru", BrokenEndPoint()).examine({})


def test_contain_chain_reaches_redirect():
    ep = RecordingEndPoint()
    chain = RuleContain(
        "Accept-Language",
        "ru-RU",
        RuleContain("User-Agent", "Firefox", RuleRedirect("https://mail.ru", ep)),
    )
    chain.examine({"User-Agent": "Mozilla Firefox", "Accept-Language": "ru-RU,en"})
    assert ep.done == ["https://mail.ru"]


def test_contain_mismatch_stops_chain():
    ep = RecordingEndPoint()
    rule = RuleContain("User-Agent", "Chrome", RuleRedirect("https://ya.ru", ep))
    with pytest.raises(RuleError, match="condition is not contain"):
        rule.examine({"User-Agent": "Mozilla Firefox"})
    assert ep.done == []


def test_contain_missing_field():
    with pytest.raises(RuleError, match="rule not exist"):
        RuleContain("User-Agent", "Firefox").examine({"Host": "localhost"})


def test_contain_request_not_object():
    with pytest.raises(RuleError, match="wrong rule"):
        RuleContain("User-Agent", "Firefox").examine(["User-Agent"])


def test_contain_value_not_string():
    with pytest.raises(RuleError):
        RuleContain("count", "1").examine({"count": 1})


def test_equal_matches_exactly():
    ep = RecordingEndPoint()
    RuleEqual("target", "/news", RuleRedirect("https://ya.ru", ep)).examine(
        {"target": "/news"}
    )
    assert ep.done == ["https://ya.ru"]


def test_equal_rejects_substring():
    with pytest.raises(RuleError, match="not equal"):
        RuleEqual("target", "/news").examine({"target": "/news/today"})


def test_equal_missing_field_and_wrong_request():
    with pytest.raises(RuleError, match="rule not exist"):
        RuleEqual("target", "/news").examine({})
    with pytest.raises(RuleError, match="wrong rule"):
        RuleEqual("target", "/news").examine("target")


def test_gtdate_past_date_passes():
    ep = RecordingEndPoint()
    RuleGTDate("Date", "01.01.1970", RuleRedirect("https://rambler.ru", ep)).examine({})
    assert ep.done == ["https://rambler.ru"]


def test_gtdate_future_year_fails():
    ep = RecordingEndPoint()
    rule = RuleGTDate("Date", "01.01.9999", RuleRedirect("https://rambler.ru", ep))
    with pytest.raises(RuleError, match="not greater"):
        rule.examine({})
    assert ep.done == []


@pytest.mark.parametrize("condition", ["abc", "32.01.2025", "18-05-2025", ""])
def test_gtdate_bad_condition(condition):
    with pytest.raises(RuleError, match="parse date"):
        RuleGTDate("Date", condition).examine({})


def test_plugins_build_their_rule_type():
    ep = RecordingEndPoint()
    redirect = RuleRedirect("https://mail.ru", ep)
    rule = contain_plugin("Contain", "User-Agent", "Firefox", redirect)
    assert isinstance(rule, RuleContain)
    rule.examine({"User-Agent": "Firefox"})
    assert ep.done == ["https://mail.ru"]
    assert isinstance(equal_plugin("Equal", "a", "b", None), RuleEqual)
    assert isinstance(gtdate_plugin("GTDate", "Date", "18.05.2025", None), RuleGTDate)


@pytest.mark.parametrize(
    "plugin,other",
    [(contain_plugin, "Equal"), (equal_plugin, "GTDate"), (gtdate_plugin, "Contain")],
)
def test_plugins_ignore_other_types(plugin, other):
    assert plugin(other, "field", "condition", None) is None