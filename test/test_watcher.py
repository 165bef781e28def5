#!/usr/bin/env python3
"""Tests for the SafeWatcher poll state machine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from safe_watcher.errors import InvalidPrefixedAddressError, TransportError
from safe_watcher.models import DetailedTx, EventType, ListedTx
from safe_watcher.utils.checksum import checksum_address
from safe_watcher.watcher import SafeWatcher, WatcherStatus, is_malicious

SAFE = "rsk:0x0000000000000000000000000000000000000001"
OWNER = "0x0000000000000000000000000000000000000002"
TARGET = "0x0000000000000000000000000000000000000003"
MULTISEND = "0x9641d764fc13c8b624c04430c7356c1c7c8102e2"
HASH_A = "0x" + "a" * 64
HASH_B = "0x" + "b" * 64
HASH_C = "0x" + "c" * 64


def listed(safe_tx_hash=HASH_A, nonce=1, executed=False, confirmations=1):
    return ListedTx(safe_tx_hash, nonce, executed, confirmations, 2)


def detailed(safe_tx_hash=HASH_A, nonce=1, executed=False, to=TARGET, operation=0,
             confirmations=(OWNER,)):
    return DetailedTx(
        safe_tx_hash=safe_tx_hash,
        nonce=nonce,
        is_executed=executed,
        confirmations_required=2,
        to=to,
        operation=operation,
        proposer=confirmations[0] if confirmations else None,
        confirmations=tuple(confirmations),
    )


class FakeApi:
    """In-memory SafeAPI with scriptable listings and details."""

    def __init__(self, all_txs=(), latest=(), details=None):
        self.all_txs = list(all_txs)
        self.latest = list(latest)
        self.details = dict(details or {})
        self.latest_error: Exception | None = None
        self.detail_errors: dict[str, Exception] = {}
        self.latest_calls = 0

    async def fetch_all(self):
        return list(self.all_txs)

    async def fetch_latest(self):
        self.latest_calls += 1
        if self.latest_error is not None:
            raise self.latest_error
        return list(self.latest)

    async def fetch_detailed(self, safe_tx_hash):
        if safe_tx_hash in self.detail_errors:
            raise self.detail_errors[safe_tx_hash]
        return self.details[safe_tx_hash]


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def notify(self, event):
        self.events.append(event)


@pytest.fixture
def notifier():
    return RecordingNotifier()


def make_watcher(api, notifier=None, signers=None, safe=SAFE):
    return SafeWatcher(safe, name="Test Safe", signers=signers, notifier=notifier, api=api)


class TestSafeWatcherLifecycle:
    """Tests for construction and start/stop."""

    @pytest.mark.asyncio
    async def test_empty_seed_logs_warning(self, caplog):
        watcher = make_watcher(FakeApi())

        with caplog.at_level("WARNING", logger="safe_watcher.watcher"):
            await watcher.start(0)

        assert "with no transactions" in caplog.text
        assert watcher.status is WatcherStatus.RUNNING

    @pytest.mark.asyncio
    async def test_non_empty_seed_does_not_warn(self, caplog):
        watcher = make_watcher(FakeApi(all_txs=[listed()]))

        with caplog.at_level("WARNING", logger="safe_watcher.watcher"):
            await watcher.start(0)

        assert "with no transactions" not in caplog.text

    def test_initialization(self, notifier):
        api = FakeApi()
        watcher = make_watcher(api, notifier)

        assert watcher.prefix == "rsk"
        assert watcher.safe == "0x0000000000000000000000000000000000000001"
        assert watcher.name == "Test Safe"
        assert watcher.api is api
        assert watcher.txs == {}
        assert watcher.status is WatcherStatus.IDLE

    def test_invalid_safe(self):
        with pytest.raises(InvalidPrefixedAddressError) as exc_info:
            SafeWatcher("rsk:invalid", api=FakeApi())

        assert str(exc_info.value) == "invalid prefixed safe address 'rsk:invalid'"

    @pytest.mark.asyncio
    async def test_start_seeds_state_without_events(self, notifier):
        api = FakeApi(all_txs=[listed(HASH_A, 0, True, 2), listed(HASH_B, 1)])
        watcher = make_watcher(api, notifier)

        await watcher.start(0)

        assert set(watcher.txs) == {HASH_A, HASH_B}
        assert watcher.status is WatcherStatus.RUNNING
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_start_failure_propagates(self, notifier):
        api = FakeApi()
        api.fetch_all = AsyncMock(side_effect=TransportError("down"))
        watcher = make_watcher(api, notifier)

        with pytest.raises(TransportError):
            await watcher.start(0)

        assert watcher.status is WatcherStatus.IDLE
        assert watcher.txs == {}

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        watcher = make_watcher(FakeApi())
        await watcher.start(0)

        watcher.stop()
        watcher.stop()

        assert watcher.status is WatcherStatus.STOPPED

    @pytest.mark.asyncio
    async def test_start_after_stop_fails(self):
        watcher = make_watcher(FakeApi())
        await watcher.start(0)
        watcher.stop()

        with pytest.raises(RuntimeError):
            await watcher.start(0)

    @pytest.mark.asyncio
    async def test_timer_polls_until_stopped(self):
        api = FakeApi()
        watcher = make_watcher(api)
        await watcher.start(0.01)

        await asyncio.sleep(0.1)
        watcher.stop()
        await asyncio.sleep(0.02)
        calls = api.latest_calls
        await asyncio.sleep(0.05)

        assert calls >= 2
        assert api.latest_calls == calls

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self):
        release = asyncio.Event()
        api = FakeApi()

        async def slow_latest():
            api.latest_calls += 1
            await release.wait()
            return []

        api.fetch_latest = slow_latest
        watcher = make_watcher(api)
        await watcher.start(0.01)

        await asyncio.sleep(0.1)
        assert api.latest_calls == 1
        assert watcher.polls_skipped >= 1

        watcher.stop()
        release.set()
        await asyncio.sleep(0.01)
        assert watcher.polls_completed == 1


class TestSafeWatcherPoll:
    """Tests for change detection in poll cycles."""

    @pytest.mark.asyncio
    async def test_new_tx_emits_created(self, notifier):
        api = FakeApi(latest=[listed()], details={HASH_A: detailed()})
        watcher = make_watcher(api, notifier, signers={OWNER: "Alice"})
        await watcher.start(0)

        await watcher.poll()

        assert len(notifier.events) == 1
        event = notifier.events[0]
        assert event.type is EventType.CREATED
        assert event.name == "Test Safe"
        assert event.chain_prefix == "rsk"
        assert event.tx.safe_tx_hash == HASH_A
        assert event.tx.proposer.name == "Alice"
        assert [str(s) for s in event.tx.confirmations] == ["Alice"]
        assert len(watcher.txs) == 1

    @pytest.mark.asyncio
    async def test_unknown_delegate_call_is_malicious(self, notifier):
        api = FakeApi(latest=[listed()], details={HASH_A: detailed(operation=1)})
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()

        assert [e.type for e in notifier.events] == [EventType.MALICIOUS]

    @pytest.mark.asyncio
    async def test_multisend_delegate_call_is_created(self, notifier):
        api = FakeApi(
            latest=[listed()],
            details={HASH_A: detailed(operation=1, to=MULTISEND.upper().replace("0X", "0x"))},
        )
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()

        assert [e.type for e in notifier.events] == [EventType.CREATED]

    @pytest.mark.asyncio
    async def test_poll_is_idempotent(self, notifier):
        api = FakeApi(latest=[listed()], details={HASH_A: detailed()})
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()
        await watcher.poll()

        assert len(notifier.events) == 1

    @pytest.mark.asyncio
    async def test_seeded_tx_without_change_is_silent(self, notifier):
        api = FakeApi(all_txs=[listed()], latest=[listed()], details={HASH_A: detailed()})
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()

        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_execution_emits_executed(self, notifier):
        api = FakeApi(
            all_txs=[listed()],
            latest=[listed(executed=True, confirmations=2)],
            details={HASH_A: detailed(executed=True, confirmations=(OWNER, TARGET))},
        )
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()
        await watcher.poll()

        assert [e.type for e in notifier.events] == [EventType.EXECUTED]
        assert watcher.txs[HASH_A].is_executed is True

    @pytest.mark.asyncio
    async def test_confirmation_emits_updated(self, notifier):
        api = FakeApi(
            all_txs=[listed()],
            latest=[listed(confirmations=2)],
            details={HASH_A: detailed(confirmations=(OWNER, TARGET))},
        )
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()

        assert [e.type for e in notifier.events] == [EventType.UPDATED]
        assert watcher.txs[HASH_A].confirmations == 2

    @pytest.mark.asyncio
    async def test_fetch_latest_failure_emits_nothing(self, notifier):
        api = FakeApi(all_txs=[listed()])
        api.latest_error = TransportError("down")
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()

        assert notifier.events == []
        assert watcher.poll_errors == 1
        assert set(watcher.txs) == {HASH_A}

    @pytest.mark.asyncio
    async def test_detail_failure_does_not_block_siblings(self, notifier):
        api = FakeApi(
            latest=[listed(HASH_A, 1), listed(HASH_B, 2)],
            details={HASH_B: detailed(HASH_B, 2)},
        )
        api.detail_errors[HASH_A] = TransportError("detail down")
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()

        assert [e.tx.safe_tx_hash for e in notifier.events] == [HASH_B]
        assert set(watcher.txs) == {HASH_A, HASH_B}
        assert watcher.polls_completed == 1

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_block_siblings(self):
        api = FakeApi(
            latest=[listed(HASH_A, 1), listed(HASH_B, 2)],
            details={HASH_A: detailed(HASH_A, 1), HASH_B: detailed(HASH_B, 2)},
        )
        failing = AsyncMock()
        failing.notify = AsyncMock(side_effect=[RuntimeError("chat down"), None])
        watcher = make_watcher(api, failing)
        await watcher.start(0)

        await watcher.poll()

        assert failing.notify.await_count == 2
        assert set(watcher.txs) == {HASH_A, HASH_B}

    @pytest.mark.asyncio
    async def test_pending_sorted_by_nonce(self, notifier):
        api = FakeApi(
            latest=[listed(HASH_C, 3), listed(HASH_A, 1, executed=True), listed(HASH_B, 2)],
            details={
                HASH_A: detailed(HASH_A, 1, executed=True),
                HASH_B: detailed(HASH_B, 2),
                HASH_C: detailed(HASH_C, 3),
            },
        )
        watcher = make_watcher(api, notifier)
        await watcher.start(0)

        await watcher.poll()

        assert len(notifier.events) == 3
        for event in notifier.events:
            assert [tx.nonce for tx in event.pending] == [2, 3]


class TestSignerResolution:
    """Tests for alias lookup."""

    def test_rsk_alias_uses_chain_checksum(self):
        owner = "0x" + "ab" * 20
        alias_key = checksum_address(owner, 30)
        watcher = make_watcher(FakeApi(), signers={alias_key: "Alice"})

        assert watcher.resolve_signer(owner).name == "Alice"
        assert watcher.resolve_signer(owner).address == owner

    def test_eth_alias_matches_exact_address(self):
        owner = "0x" + "ab" * 20
        watcher = make_watcher(
            FakeApi(),
            signers={owner: "Bob"},
            safe="eth:0x0000000000000000000000000000000000000001",
        )

        assert watcher.resolve_signer(owner).name == "Bob"
        assert watcher.resolve_signer(owner.upper().replace("0X", "0x")).name is None

    def test_unknown_signer_has_no_alias(self):
        watcher = make_watcher(FakeApi(), signers={OWNER: "Alice"})

        assert watcher.resolve_signer(TARGET).name is None


def test_is_malicious():
    assert is_malicious(detailed(operation=1))
    assert not is_malicious(detailed(operation=0))
    assert not is_malicious(detailed(operation=1, to=MULTISEND))
