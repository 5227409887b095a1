import asyncio
import logging

import pytest

from lacat.errors import TransientFetchError
from lacat.sync import DepositSynchronizer

from conftest import DAY, ETH, NOW


@pytest.mark.asyncio
async def test_tick_reconstructs_state(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    assert not sync.has_synced

    await sync.tick()
    state = sync.state

    assert sync.has_synced
    assert [d.id for d in state.deposits] == [0, 1]
    assert state.total_locked_up == 3 * ETH
    assert state.synced_at == NOW
    assert state.deposits[0].last_withdraw is None
    assert state.deposits[1].last_withdraw == NOW - 31 * DAY
    assert state.deposits[0].can_be_unlocked(clock())
    assert not state.deposits[1].can_be_unlocked(clock())
    assert state.deposits[1].can_withdraw_monthly_allowance(clock())


@pytest.mark.asyncio
async def test_reads_are_sequential_in_slot_order(session, ledger, clock):
    ledger.slots.append((5, NOW, 0, 0))
    sync = DepositSynchronizer(session, ledger, clock=clock)
    await sync.tick()
    assert ledger.reads == [0, 1, 2]


@pytest.mark.asyncio
async def test_identical_input_gives_identical_state(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    first = await sync.fetch_state()
    clock.advance(10)
    second = await sync.fetch_state()
    assert first == second
    assert first.total_locked_up == sum(d.amount for d in first.deposits)


@pytest.mark.asyncio
async def test_empty_vault(session, clock):
    from conftest import FakeLedger

    sync = DepositSynchronizer(session, FakeLedger(), clock=clock)
    await sync.tick()
    assert sync.state.deposits == ()
    assert sync.state.total_locked_up == 0


@pytest.mark.asyncio
async def test_failed_pass_keeps_previous_state(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    await sync.tick()
    before = sync.state

    ledger.read_error = TransientFetchError("connection reset")
    await sync.tick()
    assert sync.state is before
    assert sync.failures == 1


@pytest.mark.asyncio
async def test_full_withdrawal_visible_on_next_pass(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    await sync.tick()
    assert sync.state.get(0).can_be_unlocked(clock())

    # contract zeroes the slot after withdraw()
    amount, unlock, monthly, last = ledger.slots[0]
    ledger.slots[0] = (0, unlock, monthly, last)
    await sync.tick()

    d = sync.state.get(0)
    assert d.amount == 0
    assert d.is_already_withdrawn()
    assert not d.can_be_unlocked(clock())
    assert sync.state.total_locked_up == ETH


@pytest.mark.asyncio
async def test_partial_state_never_visible(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    await sync.tick()
    before = sync.state

    ledger.slots[0] = (ETH, NOW - DAY, 0, 0)
    ledger.status_gate = asyncio.Event()
    pending = asyncio.create_task(sync.tick())
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    # slot 0 already read, slot 1 pending: readers still see the old snapshot
    assert ledger.reads[-1] == 0
    assert sync.state is before

    ledger.status_gate.set()
    await pending
    assert sync.state.get(0).amount == ETH


@pytest.mark.asyncio
async def test_result_after_stop_is_discarded(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    ledger.count_gate = asyncio.Event()

    pending = asyncio.create_task(sync.tick())
    await asyncio.sleep(0)
    await sync.stop()

    ledger.count_gate.set()
    await pending
    assert not sync.has_synced
    assert sync.state.deposits == ()


@pytest.mark.asyncio
async def test_result_from_before_restart_is_discarded(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, interval=10, clock=clock)
    gate = asyncio.Event()
    ledger.count_gate = gate

    stale = asyncio.create_task(sync.tick())
    await asyncio.sleep(0)
    await sync.stop()

    ledger.count_gate = None
    sync.start()
    await asyncio.sleep(0.01)
    assert len(sync.state.deposits) == 2

    ledger.slots.append((5, NOW, 0, 0))
    gate.set()
    await stale
    assert len(sync.state.deposits) == 2
    assert sync.state.total_locked_up == 3 * ETH
    await sync.stop()


@pytest.mark.asyncio
async def test_amount_increase_is_logged(session, ledger, clock, caplog):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    await sync.tick()

    amount, unlock, monthly, last = ledger.slots[1]
    ledger.slots[1] = (amount + 1, unlock, monthly, last)
    with caplog.at_level(logging.WARNING, logger="lacat.sync"):
        await sync.tick()
    assert "may have been reordered" in caplog.text


@pytest.mark.asyncio
async def test_listeners_receive_published_state(session, ledger, clock):
    sync = DepositSynchronizer(session, ledger, clock=clock)
    seen = []
    sync.on_state(seen.append)
    await sync.tick()
    assert seen == [sync.state]
