"""
Tests for request interception rules.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_browser.session.routes import MockResponse, PageRouteTable, RouteMocker


def fake_route():
    route = MagicMock()
    route.abort = AsyncMock()
    route.fulfill = AsyncMock()
    route.continue_ = AsyncMock()
    return route


class TestPageRouteTable:
    """Test that rules are unrouted from the page they were installed on."""
    
    @pytest.mark.asyncio
    async def test_reinstall_unroutes_previous_page(self, context):
        table = PageRouteTable()
        first = context.add_page()
        second = context.add_page()
        old_handler = AsyncMock()
        
        await table.install(first, "**/api/**", old_handler)
        await table.install(second, "**/api/**", AsyncMock())
        
        first.unroute.assert_awaited_once_with("**/api/**", old_handler)
        second.unroute.assert_not_awaited()
        assert table.patterns == ["**/api/**"]
    
    @pytest.mark.asyncio
    async def test_remove_unknown_pattern(self, context):
        table = PageRouteTable()
        
        assert await table.remove("**/nothing/**") is False
    
    @pytest.mark.asyncio
    async def test_reset_forgets_without_unrouting(self, context):
        table = PageRouteTable()
        page = context.add_page()
        await table.install(page, "**/*", AsyncMock())
        
        table.reset()
        
        assert table.patterns == []
        page.unroute.assert_not_awaited()


class TestRouteMocker:
    """Test abort, fulfil and pass-through handlers."""
    
    @pytest.fixture
    def mocker(self):
        return RouteMocker()
    
    @pytest.mark.asyncio
    async def test_abort(self, mocker, context):
        page = context.add_page()
        await mocker.add(page, "**/*.png", abort=True, response=MockResponse(body="ignored"))
        handler = page.route.await_args.args[1]
        route = fake_route()
        
        await handler(route)
        
        route.abort.assert_awaited_once()
        route.fulfill.assert_not_awaited()
    
    @pytest.mark.asyncio
    async def test_fulfil_with_canned_response(self, mocker, context):
        page = context.add_page()
        response = MockResponse(
            status=201,
            body='{"id": 1}',
            content_type="application/json",
            headers={"X-Mock": "1"},
        )
        await mocker.add(page, "**/api/user", response=response)
        handler = page.route.await_args.args[1]
        route = fake_route()
        
        await handler(route)
        
        route.fulfill.assert_awaited_once_with(
            status=201,
            body='{"id": 1}',
            content_type="application/json",
            headers={"X-Mock": "1"},
        )
    
    @pytest.mark.asyncio
    async def test_pass_through(self, mocker, context):
        page = context.add_page()
        await mocker.add(page, "**/*")
        handler = page.route.await_args.args[1]
        route = fake_route()
        
        await handler(route)
        
        route.continue_.assert_awaited_once_with()
    
    @pytest.mark.asyncio
    async def test_remove_all_from_their_pages(self, mocker, context):
        first = context.add_page()
        second = context.add_page()
        await mocker.add(first, "**/a/**", abort=True)
        await mocker.add(second, "**/b/**", abort=True)
        
        await mocker.remove()
        
        assert first.unroute.await_args.args[0] == "**/a/**"
        assert second.unroute.await_args.args[0] == "**/b/**"
        assert mocker.urls == []
    
    @pytest.mark.asyncio
    async def test_remove_one(self, mocker, context):
        page = context.add_page()
        await mocker.add(page, "**/a/**", abort=True)
        await mocker.add(page, "**/b/**", abort=True)
        
        await mocker.remove("**/a/**")
        
        assert mocker.urls == ["**/b/**"]
        page.unroute.assert_awaited_once()
