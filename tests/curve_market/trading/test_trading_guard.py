import threading

import pytest

from curve_market.common.enums import MarketEventType
from curve_market.common.exceptions import ReentrantCall
from curve_market.common.model import MarketEvent
from curve_market.ledger.memory import InMemoryPaymentLedger
from curve_market.trading.guard import NonReentrantGuard, TransactionJournal, atomic


class TestNonReentrantGuard:
    def test_reentry_same_thread_rejected(self):
        guard = NonReentrantGuard("market-1")
        with guard.hold():
            assert guard.entered
            with pytest.raises(ReentrantCall):
                with guard.hold():
                    pass
        assert not guard.entered

    def test_released_on_error(self):
        guard = NonReentrantGuard("market-1")
        with pytest.raises(RuntimeError):
            with guard.hold():
                raise RuntimeError("boom")
        assert not guard.entered
        with guard.hold():
            pass

    def test_other_thread_waits_instead_of_failing(self):
        guard = NonReentrantGuard("market-1")
        order = []
        started = threading.Event()

        def worker():
            started.set()
            with guard.hold():
                order.append("worker")

        with guard.hold():
            thread = threading.Thread(target=worker)
            thread.start()
            started.wait()
            order.append("main")
        thread.join(timeout=5)

        assert order == ["main", "worker"]


class TestTransactionJournal:
    def test_rollback_runs_in_reverse_order(self):
        journal = TransactionJournal()
        calls = []
        journal.record(lambda: calls.append(1))
        journal.record(lambda: calls.append(2))
        journal.emit(MarketEvent(MarketEventType.FEE_COLLECTED, {"amount": 1}))
        journal.rollback()
        assert calls == [2, 1]
        assert journal.events == []

    def test_atomic_rolls_back_on_error(self):
        state = {"value": 0}
        with pytest.raises(ValueError):
            with atomic() as journal:
                state["value"] = 5
                journal.record(lambda: state.update(value=0))
                raise ValueError("abort")
        assert state["value"] == 0

    def test_atomic_keeps_effects_on_success(self):
        state = {"value": 0}
        with atomic() as journal:
            state["value"] = 5
            journal.record(lambda: state.update(value=0))
            journal.emit(MarketEvent(MarketEventType.BOUGHT))
        assert state["value"] == 5
        assert len(journal.events) == 1

    def test_atomic_restores_ledgers_after_undo_steps(self):
        ledger = InMemoryPaymentLedger()
        ledger.deposit("alice", 100)
        order = []
        with pytest.raises(ValueError):
            with atomic(ledger) as journal:
                ledger.transfer("alice", "bob", 60)
                ledger.transfer("bob", "carol", 60)
                journal.record(lambda: order.append(ledger.balance_of("carol")))
                raise ValueError("abort")
        # journal steps run before the ledger is restored
        assert order == [60]
        assert ledger.balance_of("alice") == 100
        assert ledger.balance_of("bob") == 0
        assert ledger.balance_of("carol") == 0
