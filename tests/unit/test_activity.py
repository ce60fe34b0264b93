"""
Tests for console, page error and request tracking.
"""

from types import SimpleNamespace

import pytest

from agent_browser.session.activity import PageActivity


def console(type_, text):
    return SimpleNamespace(type=type_, text=text)


def request(url, method="GET"):
    return SimpleNamespace(url=url, method=method, resource_type="fetch", headers={"accept": "*/*"})


@pytest.fixture
def activity():
    return PageActivity()


class TestConsoleAndErrors:
    """Test always-on console and page error collection."""
    
    def test_console_messages_from_every_page(self, activity, context):
        first = context.add_page()
        second = context.add_page()
        activity.attach(first)
        activity.attach(second)
        
        first.emit("console", console("log", "hello"))
        second.emit("console", console("error", "boom"))
        
        messages = activity.console_messages()
        assert [(m.type, m.text) for m in messages] == [("log", "hello"), ("error", "boom")]
        
        activity.clear_console_messages()
        assert activity.console_messages() == []
    
    def test_page_error_message(self, activity, context):
        page = context.add_page()
        activity.attach(page)
        
        page.emit("pageerror", SimpleNamespace(message="ReferenceError: x is not defined"))
        page.emit("pageerror", ValueError("plain"))
        
        assert [e.message for e in activity.page_errors()] == [
            "ReferenceError: x is not defined",
            "plain",
        ]
        activity.clear_page_errors()
        assert activity.page_errors() == []
    
    def test_buffers_are_bounded(self, context):
        activity = PageActivity(max_entries=2)
        page = context.add_page()
        activity.attach(page)
        
        for i in range(3):
            page.emit("console", console("log", str(i)))
        
        assert [m.text for m in activity.console_messages()] == ["1", "2"]


class TestRequests:
    """Test opt-in request tracking."""
    
    def test_requests_ignored_until_tracking_starts(self, activity, context):
        page = context.add_page()
        activity.attach(page)
        
        page.emit("request", request("https://example.com/early"))
        activity.start_request_tracking()
        page.emit("request", request("https://example.com/api/users", "POST"))
        activity.stop_request_tracking()
        page.emit("request", request("https://example.com/late"))
        
        tracked = activity.requests()
        assert len(tracked) == 1
        assert tracked[0].url == "https://example.com/api/users"
        assert tracked[0].method == "POST"
        assert tracked[0].headers == {"accept": "*/*"}
    
    def test_url_filter(self, activity, context):
        page = context.add_page()
        activity.attach(page)
        activity.start_request_tracking()
        
        page.emit("request", request("https://example.com/api/users"))
        page.emit("request", request("https://cdn.example.com/logo.png"))
        
        assert [r.url for r in activity.requests("/api/")] == ["https://example.com/api/users"]
        assert len(activity.requests()) == 2
    
    def test_clear_stops_tracking(self, activity, context):
        page = context.add_page()
        activity.attach(page)
        activity.start_request_tracking()
        page.emit("request", request("https://example.com/"))
        page.emit("console", console("log", "x"))
        
        activity.clear()
        page.emit("request", request("https://example.com/again"))
        
        assert activity.requests() == []
        assert activity.console_messages() == []
        assert not activity.tracking_requests
