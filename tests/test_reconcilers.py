import asyncio

import pytest

from conftest import Gated, make_page, make_stats
from queuewatch.exceptions import InvalidActionError, NetworkError, RemoteError
from queuewatch.models import JobAction
from queuewatch.reconcilers import (
    ActionDispatcher,
    StatsReconciler,
    TableReconciler,
    refresh_all,
)


@pytest.fixture
def table(session, client):
    return TableReconciler(session, client)


@pytest.fixture
def stats(session, client):
    return StatsReconciler(session, client)


@pytest.fixture
def dispatcher(session, client, table, stats):
    return ActionDispatcher(session, client, table, stats)


def test_refresh_jobs_replaces_rows(session, client, table):
    client.job_responses = [make_page('1', '2', '3'), make_page('4')]
    
    assert asyncio.run(table.refresh_jobs())
    assert session.rows.job_ids() == ('1', '2', '3')
    
    asyncio.run(table.refresh_jobs())
    assert session.rows.job_ids() == ('4',)


def test_rows_expose_retry_and_dlq_actions(session, client, table):
    client.job_responses = [make_page('7')]
    asyncio.run(table.refresh_jobs())
    
    row = session.rows.rows[0]
    assert [(t.action, t.job_id) for t in row.actions] == [
        (JobAction.RETRY, '7'),
        (JobAction.DLQ, '7')
    ]
    assert row.cells[3] == '0/3'


def test_empty_page_still_sets_page_indicator(session, client, table):
    client.job_responses = [make_page()]
    session.query.next_page()
    session.query.next_page()
    
    asyncio.run(table.refresh_jobs())
    
    assert len(session.rows) == 0
    assert session.page == 3


def test_stale_jobs_response_is_discarded(session, client, table):
    async def scenario():
        gate = asyncio.Event()
        client.job_responses = [Gated(gate, make_page('old')), make_page('new')]
        
        first = asyncio.ensure_future(table.refresh_jobs())
        await asyncio.sleep(0)
        second = await table.refresh_jobs()
        gate.set()
        return await first, second
    
    first_applied, second_applied = asyncio.run(scenario())
    
    assert not first_applied
    assert second_applied
    assert session.rows.job_ids() == ('new',)


def test_stale_page_number_is_not_rendered(session, client, table):
    async def scenario():
        gate = asyncio.Event()
        client.job_responses = [Gated(gate, make_page('p2')), make_page('p1')]
        
        session.query.next_page()
        first = asyncio.ensure_future(table.refresh_jobs())
        await asyncio.sleep(0)
        session.query.reset()
        await table.refresh_jobs()
        gate.set()
        await first
    
    asyncio.run(scenario())
    
    assert session.page == 1
    assert session.rows.job_ids() == ('p1',)


def test_jobs_failure_is_recorded_not_raised(session, client, table):
    client.job_responses = [make_page('1'), NetworkError('offline')]
    asyncio.run(table.refresh_jobs())
    
    assert not asyncio.run(table.refresh_jobs())
    
    assert isinstance(session.errors['jobs'], NetworkError)
    assert session.rows.job_ids() == ('1',)


def test_successful_refresh_clears_error(session, client, table):
    client.job_responses = [RemoteError(500, 'boom'), make_page('1')]
    asyncio.run(table.refresh_jobs())
    assert 'jobs' in session.errors
    
    asyncio.run(table.refresh_jobs())
    assert 'jobs' not in session.errors


def test_refresh_stats_updates_counters_and_history(session, client, stats):
    client.stats_responses = [make_stats(total=10, pending=3, failed=2, dlq=1)]
    
    asyncio.run(stats.refresh_stats())
    
    assert session.counters == {'total': 10, 'pending': 3, 'failed': 2, 'dlq': 1}
    assert len(session.history) == 1
    assert session.series.values == (10,)


def test_stats_without_points_leaves_history_alone(session, client, stats):
    client.stats_responses = [make_stats(total=4, ts=None)]
    
    asyncio.run(stats.refresh_stats())
    
    assert session.counters['total'] == 4
    assert len(session.history) == 0
    assert session.series.values == ()


def test_history_holds_most_recent_120_polls(session, client, stats):
    client.stats_responses = [make_stats(total=i) for i in range(130)]
    
    async def poll():
        for _ in range(130):
            await stats.refresh_stats()
    
    asyncio.run(poll())
    
    assert len(session.history) == 120
    assert [p.total for p in session.history] == list(range(10, 130))
    assert session.series.values == tuple(range(10, 130))


def test_stats_failure_does_not_block_jobs(session, client, table, stats):
    client.job_responses = [make_page('1')]
    client.stats_responses = [RemoteError(503, 'unavailable')]
    
    asyncio.run(refresh_all(table, stats))
    
    assert session.rows.job_ids() == ('1',)
    assert isinstance(session.errors['stats'], RemoteError)


def test_jobs_failure_does_not_block_stats(session, client, table, stats):
    client.job_responses = [NetworkError('offline')]
    client.stats_responses = [make_stats(total=9)]
    
    asyncio.run(refresh_all(table, stats))
    
    assert session.counters['total'] == 9
    assert 'jobs' in session.errors


def test_action_success_triggers_full_pass(session, client, dispatcher):
    assert asyncio.run(dispatcher.perform_action('42', 'retry'))
    
    assert client.calls[0] == 'POST /jobs/42/retry'
    assert client.count('GET /jobs') == 1
    assert client.count('GET /stats') == 1
    assert 'action' not in session.errors


def test_failed_action_still_triggers_full_pass(session, client, dispatcher):
    client.action_responses = [RemoteError(409, 'max retries exceeded')]
    
    assert not asyncio.run(dispatcher.perform_action('42', JobAction.RETRY))
    
    assert client.calls[0] == 'POST /jobs/42/retry'
    assert client.count('GET /jobs') == 1
    assert client.count('GET /stats') == 1
    assert session.errors['action'].status == 409


def test_dlq_action(client, dispatcher):
    asyncio.run(dispatcher.perform_action('42', 'dlq'))
    
    assert client.calls[0] == 'POST /jobs/42/dlq'


def test_unknown_action_is_rejected(client, dispatcher):
    with pytest.raises(InvalidActionError):
        asyncio.run(dispatcher.perform_action('42', 'delete'))
    
    assert client.calls == []


def test_stale_stats_response_is_discarded(session, client, stats):
    async def scenario():
        gate = asyncio.Event()
        client.stats_responses = [
            Gated(gate, make_stats(total=1, ts='2024-05-01T10:00:00Z')),
            make_stats(total=2, ts='2024-05-01T10:00:02Z')
        ]
        
        first = asyncio.ensure_future(stats.refresh_stats())
        await asyncio.sleep(0)
        second = await stats.refresh_stats()
        gate.set()
        return await first, second
    
    first_applied, second_applied = asyncio.run(scenario())
    
    assert not first_applied
    assert second_applied
    assert session.counters['total'] == 2
    assert [p.total for p in session.history] == [2]
    assert session.series.values == (2,)
