"""Tests for per-wallet token caching and single-flight fetching."""

import asyncio
from typing import List

import pytest

from idex_ws.client.token_manager import WebSocketTokenManager
from idex_ws.exceptions import TokenFetchError


class GatedFetcher:
    """Fetcher that blocks until released, so calls can overlap."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.release = asyncio.Event()
        self.fail_with: Exception | None = None

    async def __call__(self, wallet: str) -> str:
        self.calls.append(wallet)
        await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return f"token-{wallet}-{len(self.calls)}"


class TestGetToken:
    """Test get_token behavior."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self) -> None:
        """Test that N concurrent calls for one wallet fetch exactly once."""
        fetcher = GatedFetcher()
        manager = WebSocketTokenManager(fetcher)

        tasks = [asyncio.ensure_future(manager.get_token("0xA")) for _ in range(5)]
        await asyncio.sleep(0)
        fetcher.release.set()
        tokens = await asyncio.gather(*tasks)

        assert fetcher.calls == ["0xA"]
        assert tokens == ["token-0xA-1"] * 5

    @pytest.mark.asyncio
    async def test_distinct_wallets_fetch_concurrently(self) -> None:
        """Test that different wallets each get their own fetch."""
        fetcher = GatedFetcher()
        manager = WebSocketTokenManager(fetcher)

        task = asyncio.ensure_future(
            asyncio.gather(manager.get_token("0xA"), manager.get_token("0xB"))
        )
        await asyncio.sleep(0.01)
        assert sorted(fetcher.calls) == ["0xA", "0xB"]

        fetcher.release.set()
        await task

    @pytest.mark.asyncio
    async def test_cached_token_is_reused(self) -> None:
        """Test that a resolved token is returned without fetching again."""
        fetcher = GatedFetcher()
        fetcher.release.set()
        manager = WebSocketTokenManager(fetcher)

        first = await manager.get_token("0xA")
        second = await manager.get_token("0xA")

        assert first == second
        assert fetcher.calls == ["0xA"]

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self) -> None:
        """Test that a token older than the TTL is fetched again."""
        fetcher = GatedFetcher()
        fetcher.release.set()
        manager = WebSocketTokenManager(fetcher, token_ttl_seconds=60)

        assert await manager.get_token("0xA") == "token-0xA-1"
        manager._entries["0xA"].fetched_at -= 30
        assert await manager.get_token("0xA") == "token-0xA-1"
        manager._entries["0xA"].fetched_at -= 31
        assert await manager.get_token("0xA") == "token-0xA-2"

    @pytest.mark.asyncio
    async def test_fetch_error_propagates_to_all_and_clears_cache(self) -> None:
        """Test that a failed fetch fails every waiter and the next call retries."""
        fetcher = GatedFetcher()
        fetcher.fail_with = RuntimeError("boom")
        manager = WebSocketTokenManager(fetcher)

        tasks = [asyncio.ensure_future(manager.get_token("0xA")) for _ in range(3)]
        await asyncio.sleep(0)
        fetcher.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(result, TokenFetchError) for result in results)
        assert results[0].wallet == "0xA"
        assert isinstance(results[0].__cause__, RuntimeError)
        assert manager.get_last_cached_token("0xA") is None

        fetcher.fail_with = None
        assert await manager.get_token("0xA") == "token-0xA-2"
        assert fetcher.calls == ["0xA", "0xA"]

    @pytest.mark.asyncio
    async def test_fetch_timeout(self) -> None:
        """Test that a hung fetch fails with TokenFetchError when a timeout is set."""
        fetcher = GatedFetcher()
        manager = WebSocketTokenManager(fetcher, fetch_timeout_seconds=0.01)

        with pytest.raises(TokenFetchError):
            await manager.get_token("0xA")

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_fetch(self) -> None:
        """Test that cancelling one waiter leaves the fetch running for others."""
        fetcher = GatedFetcher()
        manager = WebSocketTokenManager(fetcher)

        cancelled = asyncio.ensure_future(manager.get_token("0xA"))
        survivor = asyncio.ensure_future(manager.get_token("0xA"))
        await asyncio.sleep(0)
        cancelled.cancel()
        await asyncio.sleep(0)
        fetcher.release.set()

        assert await survivor == "token-0xA-1"
        assert fetcher.calls == ["0xA"]


class TestLastCachedToken:
    """Test synchronous cache reads and invalidation."""

    def test_unknown_wallet(self) -> None:
        """Test that a wallet never fetched has no cached token."""
        manager = WebSocketTokenManager(GatedFetcher())

        assert manager.get_last_cached_token("0xA") is None

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self) -> None:
        """Test that invalidate drops the cached token."""
        fetcher = GatedFetcher()
        fetcher.release.set()
        manager = WebSocketTokenManager(fetcher)

        await manager.get_token("0xA")
        await manager.get_token("0xB")
        manager.invalidate("0xA")

        assert manager.get_last_cached_token("0xA") is None
        assert manager.get_last_cached_token("0xB") == "token-0xB-2"

        manager.clear()
        assert manager.get_last_cached_token("0xB") is None
        await manager.get_token("0xA")
        assert len(fetcher.calls) == 3
