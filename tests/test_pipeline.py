"""
Query pipeline tests
====================

Timers are shortened to tens of milliseconds; each test waits well
past the relevant deadline before asserting.
"""
import asyncio
from typing import Dict, List, Optional

import pytest

from dtshelf.catalog.schemas import QueryContext
from dtshelf.pipeline import QueryPipelineController

from conftest import make_book


pytestmark = pytest.mark.asyncio


CATALOG = [make_book("1", title="Empathy Maps"), make_book("2", title="Growth"), make_book("3")]


class RecordingRecommender:
    """Returns canned ids per query, optionally after a per-query delay."""

    def __init__(self, results: Optional[Dict[str, List[str]]] = None, delays: Optional[Dict[str, float]] = None):
        self.results = results or {}
        self.delays = delays or {}
        self.calls: List[str] = []

    async def __call__(self, query, books):
        self.calls.append(query)
        delay = self.delays.get(query, 0.0)
        if delay:
            await asyncio.sleep(delay)
        return self.results.get(query, ["1"])


def make_controller(recommender, debounce=0.05, min_display=0.0):
    events = []
    controller = QueryPipelineController(
        recommend=recommender,
        publish=lambda ids, busy: events.append((ids, busy)),
        debounce=debounce,
        min_display=min_display,
    )
    return controller, events


async def test_catalog_load_publishes_everything():
    recommender = RecordingRecommender()
    controller, events = make_controller(recommender)

    controller.set_catalog(CATALOG)

    assert events == [(["1", "2", "3"], False)]
    assert recommender.calls == []


async def test_rapid_changes_collapse_into_one_call():
    recommender = RecordingRecommender({"abc": ["2"]})
    controller, events = make_controller(recommender, debounce=0.05)
    controller.set_catalog(CATALOG)

    controller.set_query("a")
    await asyncio.sleep(0.01)
    controller.set_query("ab")
    await asyncio.sleep(0.01)
    controller.set_query("abc")
    await asyncio.sleep(0.2)

    assert recommender.calls == ["abc"]
    assert controller.result_ids == ["2"]
    assert controller.busy is False


async def test_tab_and_query_are_combined():
    recommender = RecordingRecommender()
    controller, _ = make_controller(recommender, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_context(QueryContext(tab="공감", query="  인터뷰 "))
    await asyncio.sleep(0.1)

    assert recommender.calls == ["공감   인터뷰"]


async def test_tab_alone_is_ranked():
    recommender = RecordingRecommender({"공감": ["1"]})
    controller, _ = make_controller(recommender, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_tab("공감")
    await asyncio.sleep(0.1)

    assert recommender.calls == ["공감"]
    assert controller.result_ids == ["1"]


async def test_busy_stays_up_for_minimum_display_time():
    recommender = RecordingRecommender({"x": ["3"]})
    controller, events = make_controller(recommender, debounce=0.01, min_display=0.3)
    controller.set_catalog(CATALOG)

    controller.set_query("x")
    await asyncio.sleep(0.1)

    # The answer is already in, but not shown yet.
    assert recommender.calls == ["x"]
    assert controller.busy is True
    assert controller.result_ids == ["1", "2", "3"]

    await asyncio.sleep(0.35)

    assert controller.busy is False
    assert controller.result_ids == ["3"]
    assert events[-2:] == [(["1", "2", "3"], True), (["3"], False)]


async def test_slow_answer_is_published_without_extra_wait():
    recommender = RecordingRecommender({"x": ["2"]}, delays={"x": 0.1})
    controller, events = make_controller(recommender, debounce=0.01, min_display=0.05)
    controller.set_catalog(CATALOG)

    controller.set_query("x")
    await asyncio.sleep(0.2)

    assert events[-1] == (["2"], False)


async def test_previous_results_stay_visible_while_busy():
    recommender = RecordingRecommender({"a": ["2"], "b": ["3"]}, delays={"b": 0.1})
    controller, events = make_controller(recommender, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_query("a")
    await asyncio.sleep(0.05)
    assert controller.result_ids == ["2"]

    controller.set_query("b")
    await asyncio.sleep(0.05)
    assert controller.busy is True
    assert controller.result_ids == ["2"]

    await asyncio.sleep(0.15)
    assert controller.result_ids == ["3"]
    assert controller.busy is False


async def test_home_state_bypasses_ranking():
    recommender = RecordingRecommender()
    controller, events = make_controller(recommender, debounce=0.05)
    controller.set_catalog(CATALOG)

    controller.set_query("growth")
    controller.reset()

    assert controller.result_ids == ["1", "2", "3"]
    assert controller.busy is False
    await asyncio.sleep(0.1)
    assert recommender.calls == []


async def test_home_state_clears_busy_of_running_computation():
    recommender = RecordingRecommender({"x": ["2"]}, delays={"x": 0.1})
    controller, events = make_controller(recommender, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_query("x")
    await asyncio.sleep(0.05)
    assert controller.busy is True

    controller.set_query("   ")
    assert controller.busy is False
    assert controller.result_ids == ["1", "2", "3"]

    await asyncio.sleep(0.15)
    # The late answer for "x" is dropped.
    assert controller.result_ids == ["1", "2", "3"]
    assert (["2"], False) not in events


async def test_stale_answer_is_discarded():
    recommender = RecordingRecommender(
        {"first": ["1"], "second": ["2"]},
        delays={"first": 0.15},
    )
    controller, events = make_controller(recommender, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_query("first")
    await asyncio.sleep(0.05)
    controller.set_query("second")
    await asyncio.sleep(0.3)

    assert recommender.calls == ["first", "second"]
    published = [ids for ids, busy in events if not busy]
    assert ["1"] not in published
    assert controller.result_ids == ["2"]


async def test_same_context_is_not_recomputed():
    recommender = RecordingRecommender()
    controller, _ = make_controller(recommender, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_query("x")
    await asyncio.sleep(0.05)
    controller.set_query("x")
    await asyncio.sleep(0.05)

    assert recommender.calls == ["x"]


async def test_input_before_catalog_load_waits_for_it():
    recommender = RecordingRecommender({"x": ["3"]})
    controller, events = make_controller(recommender, debounce=0.01)

    controller.set_query("x")
    await asyncio.sleep(0.05)
    assert recommender.calls == []
    assert events == []

    controller.set_catalog(CATALOG)
    await asyncio.sleep(0.05)
    assert recommender.calls == ["x"]
    assert controller.result_ids == ["3"]


async def test_reload_during_computation_drops_old_answer():
    recommender = RecordingRecommender({"x": ["1"]}, delays={"x": 0.1})
    controller, events = make_controller(recommender, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_query("x")
    await asyncio.sleep(0.05)
    controller.set_catalog(CATALOG[:2])
    await asyncio.sleep(0.3)

    # Two computations, only the one for the new catalog is published.
    assert recommender.calls == ["x", "x"]
    assert [e for e in events if not e[1]][-1] == (["1"], False)
    assert sum(1 for ids, busy in events if not busy and ids == ["1"]) == 1


async def test_recommender_error_clears_busy():
    async def broken(query, books):
        raise RuntimeError("boom")

    controller, events = make_controller(broken, debounce=0.01)
    controller.set_catalog(CATALOG)

    controller.set_query("x")
    await asyncio.sleep(0.05)

    assert controller.busy is False
    assert controller.result_ids == ["1", "2", "3"]


async def test_close_cancels_pending_work():
    recommender = RecordingRecommender()
    controller, _ = make_controller(recommender, debounce=0.02)
    controller.set_catalog(CATALOG)

    controller.set_query("x")
    assert controller.pending is True
    controller.close()
    await asyncio.sleep(0.05)

    assert recommender.calls == []
    assert controller.pending is False


async def test_old_settle_does_not_clear_busy_of_newer_run():
    """A -> B -> A: the first A answer must not end the second A run early."""
    delays = [0.1, 1.0]
    calls = []

    async def recommender(query, books):
        calls.append(query)
        await asyncio.sleep(delays[len(calls) - 1])
        return ["2"]

    controller, events = make_controller(recommender, debounce=0.1, min_display=0.5)
    controller.set_catalog(CATALOG)

    controller.set_query("a")
    await asyncio.sleep(0.12)
    controller.set_query("b")
    await asyncio.sleep(0.02)
    controller.set_query("a")
    # First answer is in and waiting on the display floor; second run has started.
    await asyncio.sleep(0.5)

    assert calls == ["a", "a"]
    assert controller.busy is True
    assert controller.result_ids == ["1", "2", "3"]

    await asyncio.sleep(0.9)
    assert controller.busy is False
    assert controller.result_ids == ["2"]
    assert sum(1 for ids, busy in events if ids == ["2"] and not busy) == 1
