"""Tests for wren.http.response.Response."""

import json

import pytest

from wren.errors import ResponseAlreadySent, ValidationError
from wren.http.cookies import sign
from wren.http.response import Response


class TestWriters:
    def test_defaults(self) -> None:
        response = Response()
        assert response.status_code == 200
        assert response.body == b""
        assert response.sent is False

    def test_send_text(self) -> None:
        response = Response()
        response.send("hello")
        assert response.text == "hello"
        assert response.content_type == "text/plain; charset=utf-8"
        assert response.sent is True

    def test_send_dict_serializes(self) -> None:
        response = Response()
        response.send({"a": 1})
        assert json.loads(response.body) == {"a": 1}

    def test_json(self) -> None:
        response = Response()
        response.status(201).json([1, 2])
        assert response.status_code == 201
        assert response.content_type == "application/json"
        assert json.loads(response.body) == [1, 2]

    def test_redirect(self) -> None:
        response = Response()
        response.redirect("/login")
        assert response.status_code == 302
        assert response.get_header("location") == "/login"

    def test_redirect_custom_status(self) -> None:
        response = Response()
        response.redirect("/new", status_code=301)
        assert response.status_code == 301

    def test_send_twice_raises(self) -> None:
        response = Response()
        response.send("one")
        with pytest.raises(ResponseAlreadySent):
            response.json({"two": 2})
        assert response.text == "one"

    def test_redirect_after_send_keeps_status(self) -> None:
        response = Response()
        response.send("one")
        with pytest.raises(ResponseAlreadySent):
            response.redirect("/elsewhere")
        assert response.status_code == 200
        assert response.get_header("location") is None


class TestHeaders:
    def test_set_header_chainable(self) -> None:
        response = Response().set_header("X-A", "1").set_header("X-B", "2")
        assert response.headers == (("X-A", "1"), ("X-B", "2"))

    def test_headers_allowed_after_send(self) -> None:
        response = Response()
        response.send("ok")
        response.set_header("X-Late", "yes")
        assert response.get_header("x-late") == "yes"

    def test_raw_headers(self) -> None:
        response = Response()
        response.set_header("X-Trace", "abc")
        response.cookie("theme", "dark")
        response.json({})
        assert response.raw_headers() == [
            (b"content-type", b"application/json"),
            (b"x-trace", b"abc"),
            (b"set-cookie", b"theme=dark"),
        ]

    @pytest.mark.parametrize(
        ("name", "value"),
        [("X-Name", "日本"), ("X-Name", "a\r\nSet-Cookie: evil=1"), ("X-Bad\n", "v")],
    )
    def test_unsendable_header_rejected(self, name: str, value: str) -> None:
        response = Response()
        with pytest.raises(ValidationError):
            response.set_header(name, value)
        assert response.headers == ()

    def test_unsendable_redirect_rejected(self) -> None:
        response = Response()
        with pytest.raises(ValidationError, match="Redirect URL"):
            response.redirect("/日本")
        assert not response.sent
        assert response.get_header("location") is None


class TestCookies:
    def test_cookie(self) -> None:
        response = Response()
        response.cookie("theme", "dark", path="/", max_age=60_000)
        (cookie,) = response.cookies
        assert cookie.to_header_value() == "theme=dark; Max-Age=60; Path=/"

    def test_signed_cookie(self) -> None:
        response = Response()
        response.signed_cookie("sid", "abc", "secret")
        (cookie,) = response.cookies
        assert cookie.to_header_value() == sign("sid", "abc", "secret")

    def test_signed_cookie_requires_secret(self) -> None:
        with pytest.raises(ValidationError):
            Response().signed_cookie("sid", "abc", "")

    def test_cookie_requires_value(self) -> None:
        with pytest.raises(ValidationError):
            Response().cookie("sid", "")

    def test_last_write_wins(self) -> None:
        response = Response()
        response.cookie("a", "1")
        response.cookie("a", "2")
        assert [c.value for c in response.cookies] == ["2"]

    def test_delete_cookie(self) -> None:
        response = Response()
        response.cookie("a", "1")
        response.delete_cookie("a")
        (cookie,) = response.cookies
        assert cookie.value == "deleted"
        assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in cookie.to_header_value()

    @pytest.mark.parametrize(
        ("key", "value", "options"),
        [
            ("name", "日本", {}),
            ("na\nme", "v", {}),
            ("name", "v", {"domain": "例え.jp"}),
            ("name", "v", {"path": "/\r\n"}),
        ],
    )
    def test_unsendable_cookie_rejected(self, key: str, value: str, options: dict) -> None:
        response = Response()
        with pytest.raises(ValidationError, match="Cookie"):
            response.cookie(key, value, **options)
        assert response.cookies == ()
