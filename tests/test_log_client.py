# tests/test_log_client.py
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from backend.calculator import SlideAnalytics
from backend.log_client import InteractionLogClient, MockInteractionLogClient, load_collection


def fake_response(body, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status.return_value = None
    return resp


def test_pages_until_short_page():
    client = InteractionLogClient("https://lms.example.org/api", token="t", page_size=2, rate_limit_sleep=0)
    pages = [
        fake_response({"data": [{"studentId": "a"}, {"studentId": "b"}], "paging": {"count": 3}}),
        fake_response({"data": [{"studentId": "c"}], "paging": {"count": 3}}),
    ]
    with patch.object(client.session, "get", side_effect=pages) as get:
        records = client.get_collection(module_id="bio", submodule_id="cells")

    assert [r["studentId"] for r in records] == ["a", "b", "c"]
    assert get.call_count == 2
    url = get.call_args_list[0].args[0]
    assert url == "https://lms.example.org/api/interactions"
    first_params = get.call_args_list[0].kwargs["params"]
    assert first_params == {"limit": 2, "moduleId": "bio", "submoduleId": "cells", "skip": 0}
    assert get.call_args_list[1].kwargs["params"]["skip"] == 2
    assert client.session.headers["Authorization"] == "Bearer t"


def test_bare_list_is_single_page():
    client = InteractionLogClient("https://lms.example.org/api/interactions", page_size=1, rate_limit_sleep=0)
    with patch.object(client.session, "get", return_value=fake_response([{"studentId": "a"}])) as get:
        assert client.get_collection() == [{"studentId": "a"}]
    assert get.call_count == 1
    assert get.call_args.args[0] == "https://lms.example.org/api/interactions"


def test_basic_auth_from_environment(monkeypatch):
    monkeypatch.setenv("ANALYTICS_USERNAME", "instructor")
    monkeypatch.setenv("ANALYTICS_PASSWORD", "secret")
    monkeypatch.delenv("ANALYTICS_TOKEN", raising=False)
    client = InteractionLogClient("https://lms.example.org/api")
    assert client.session.auth == ("instructor", "secret")


def test_http_errors_propagate():
    client = InteractionLogClient("https://lms.example.org/api", rate_limit_sleep=0)
    resp = fake_response({})
    resp.raise_for_status.side_effect = requests.HTTPError("500")
    with patch.object(client.session, "get", return_value=resp):
        with pytest.raises(requests.HTTPError):
            client.get_collection()


def test_ping():
    client = InteractionLogClient("https://lms.example.org/api")
    with patch.object(client.session, "get", return_value=fake_response({}, status=200)):
        assert client.ping()
    with patch.object(client.session, "get", side_effect=requests.ConnectionError("down")):
        assert not client.ping()


def test_load_collection(tmp_path):
    path = tmp_path / "logs.json"
    path.write_text(json.dumps({"data": [{"studentId": "a", "slides": {}}]}))
    assert load_collection(path) == [{"studentId": "a", "slides": {}}]
    path.write_text(json.dumps([{"studentId": "b"}]))
    assert load_collection(path) == [{"studentId": "b"}]


def test_mock_client_is_deterministic_and_analyzable():
    first = MockInteractionLogClient(seed=3, n_students=12).get_collection()
    second = MockInteractionLogClient(seed=3, n_students=12).get_collection()
    assert first == second
    assert len(first) == 12

    analytics = SlideAnalytics(first)
    slide_ids = list(analytics.index)
    assert slide_ids
    for slide_id in slide_ids:
        for interaction_id in analytics.interaction_ids_for_slide(slide_id):
            stats = analytics.get_stats(slide_id, interaction_id)
            if interaction_id == "confidence":
                assert stats.type == "number"
            else:
                assert stats.is_judging
                assert stats.rt is not None


def test_mock_client_shares_http_setup(monkeypatch):
    monkeypatch.delenv("ANALYTICS_TOKEN", raising=False)
    monkeypatch.delenv("ANALYTICS_USERNAME", raising=False)
    client = MockInteractionLogClient(n_students=2)
    assert isinstance(client.session, requests.Session)
    assert client._url() == "mock://local/interactions"
    assert client.page_size == 200
    assert client.ping()


def test_non_finite_numbers_in_file_do_not_break_stats(tmp_path):
    path = tmp_path / "logs.json"
    path.write_text('[{"studentId": "a", "slides": {"s": {"interactions": {"i": {"value": NaN}}}}}]')
    analytics = SlideAnalytics(load_collection(path))
    stats = analytics.get_stats("s", "i")
    assert stats.type == "number"
    assert stats.histogram == {"NaN": 1}
