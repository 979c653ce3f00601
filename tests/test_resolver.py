"""Tests for duration resolution: headers, fixed values, caps, conditions."""
import json

import pytest

from slowdown.config import build_config
from slowdown.metrics import DelayMetrics
from slowdown.options import condition, fixed, header, log_to, max_delay
from slowdown.resolver import resolve, resolve_both
from slowdown.types import Phase

VALID_API_KEYS = {"x96f3s6", "89qWsd2"}


def has_valid_key(request):
    return request.headers.get("apikey") in VALID_API_KEYS


def is_admin(request):
    return request.headers.get("user") == "admin"


class TestDefaults:
    def test_one_second_before(self, make_request):
        cfg = build_config()
        req = make_request()
        assert resolve(cfg, req, Phase.BEFORE) == 1.0
        assert resolve(cfg, req, Phase.AFTER) == 0.0


class TestFixed:
    def test_before_after(self, make_request):
        cfg = build_config(fixed(0.3, 0.7))
        req = make_request()
        assert resolve(cfg, req, Phase.BEFORE) == pytest.approx(0.3)
        assert resolve(cfg, req, Phase.AFTER) == pytest.approx(0.7)

    def test_last_one_wins(self, make_request):
        cfg = build_config(fixed(5, 5), fixed(0.1, 0.2))
        assert resolve_both(cfg, make_request())[:2] == (pytest.approx(0.1), pytest.approx(0.2))

    def test_negative_floors_to_zero(self, make_request):
        cfg = build_config(fixed(-1, -2))
        assert resolve_both(cfg, make_request()) == (0.0, 0.0, True)


class TestHeader:
    def test_both_headers(self, make_request):
        cfg = build_config(header("delay"))
        req = make_request({"delay-before": "300ms", "delay-after": "700ms"})
        before, after, applies = resolve_both(cfg, req)
        assert (before, after) == (pytest.approx(0.3), pytest.approx(0.7))
        assert applies

    def test_header_names_case_insensitive(self, make_request):
        cfg = build_config(header("X-Delay"))
        req = make_request({"x-delay-before": "1s"})
        assert resolve(cfg, req, Phase.BEFORE) == 1.0

    def test_absent_headers_mean_no_delay(self, make_request):
        cfg = build_config(header("delay"))
        assert resolve_both(cfg, make_request()) == (0.0, 0.0, True)

    def test_fixed_ignored_in_header_mode(self, make_request):
        cfg = build_config(fixed(2, 3), header("delay"))
        req = make_request({"delay-after": "100ms"})
        assert resolve(cfg, req, Phase.BEFORE) == 0.0
        assert resolve(cfg, req, Phase.AFTER) == pytest.approx(0.1)

    def test_header_wins_regardless_of_order(self, make_request):
        cfg = build_config(header("delay"), fixed(2, 3))
        assert resolve(cfg, make_request(), Phase.BEFORE) == 0.0

    def test_empty_prefix_uses_fixed(self, make_request):
        cfg = build_config(header(""), fixed(0.2, 0))
        assert resolve(cfg, make_request({"-before": "5s"}), Phase.BEFORE) == pytest.approx(0.2)

    def test_malformed_header_fails_open(self, make_request, logger, log_stream):
        cfg = build_config(header("delay"), log_to(logger))
        req = make_request({"delay-before": "soon", "delay-after": "200ms"})
        assert resolve_both(cfg, req)[:2] == (0.0, pytest.approx(0.2))

        records = [json.loads(line) for line in log_stream.getvalue().splitlines()]
        invalid = [r for r in records if r["event"] == "header.invalid"]
        assert invalid and invalid[0]["header"] == "delay-before"
        assert DelayMetrics().snapshot()["invalid_headers"] == 1

    def test_negative_header_floors_to_zero(self, make_request):
        cfg = build_config(header("delay"))
        assert resolve(cfg, make_request({"delay-before": "-3s"}), Phase.BEFORE) == 0.0


class TestMax:
    def test_caps_each_phase(self, make_request):
        cfg = build_config(header("delay"), max_delay(0.1))
        req = make_request({"delay-before": "300ms", "delay-after": "700ms"})
        before, after, _ = resolve_both(cfg, req)
        assert before == pytest.approx(0.1)
        assert after == pytest.approx(0.1)

    def test_under_cap_untouched(self, make_request):
        cfg = build_config(header("delay"), max_delay(0.6))
        req = make_request({"delay-before": "100ms", "delay-after": "150ms"})
        assert resolve_both(cfg, req)[:2] == (pytest.approx(0.1), pytest.approx(0.15))

    def test_caps_fixed(self, make_request):
        cfg = build_config(fixed(30, 30))
        assert resolve_both(cfg, make_request())[:2] == (20.0, 20.0)

    def test_negative_max_disables(self, make_request):
        cfg = build_config(fixed(1, 1), max_delay(-1))
        assert resolve_both(cfg, make_request())[:2] == (0.0, 0.0)


class TestConditions:
    def test_met(self, make_request):
        cfg = build_config(header("delay"), condition(has_valid_key))
        req = make_request({"delay-before": "100ms", "apikey": "x96f3s6"})
        assert resolve(cfg, req, Phase.BEFORE) == pytest.approx(0.1)

    def test_unmet_gates_both_phases(self, make_request):
        cfg = build_config(fixed(1, 1), condition(has_valid_key))
        req = make_request({"apikey": "passw0rd"})
        assert resolve_both(cfg, req) == (0.0, 0.0, False)
        assert resolve(cfg, req, Phase.AFTER) == 0.0

    def test_all_must_hold(self, make_request):
        cfg = build_config(header("delay"), condition(is_admin), condition(has_valid_key))
        ok = make_request({"delay-before": "300ms", "apikey": "x96f3s6", "user": "admin"})
        ko = make_request({"delay-before": "300ms", "apikey": "x96f3s6", "user": "ted"})
        assert resolve(cfg, ok, Phase.BEFORE) == pytest.approx(0.3)
        assert resolve(cfg, ko, Phase.BEFORE) == 0.0

    def test_short_circuits(self, make_request):
        calls = []

        def never(request):
            calls.append("never")
            return False

        def spy(request):
            calls.append("spy")
            return True

        cfg = build_config(condition(never), condition(spy))
        resolve_both(cfg, make_request())
        assert calls == ["never"]

    def test_evaluated_fresh_per_request(self, make_request):
        answers = iter([True, False])
        cfg = build_config(fixed(0.5, 0), condition(lambda r: next(answers)))
        assert resolve(cfg, make_request(), Phase.BEFORE) == 0.5
        assert resolve(cfg, make_request(), Phase.BEFORE) == 0.0
