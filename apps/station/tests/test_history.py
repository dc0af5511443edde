import pytest

from services.daily_summary import DailySummaryRecord, DailySummaryStore
from services.history import (
    PagedQuery,
    SimpleQuery,
    TimeOnlyQuery,
    parse_history_query,
    query_history,
)

JAN_1 = 1_704_067_200
DAY = 86_400


@pytest.mark.parametrize(
    "params, expected",
    [
        ({}, SimpleQuery()),
        ({"days": ""}, SimpleQuery()),
        ({"days": "7"}, TimeOnlyQuery(days=7)),
        ({"DAYS": "12abc"}, TimeOnlyQuery(days=12)),
        ({"days": "abc"}, TimeOnlyQuery(days=0)),
        ({"days": "99999"}, TimeOnlyQuery(days=3650)),
        ({"limit": "1000"}, PagedQuery(days=0, limit=365, offset=0)),
        ({"limit": "0"}, PagedQuery(days=0, limit=1, offset=0)),
        ({"Offset": "-5"}, PagedQuery(days=0, limit=100, offset=0)),
        ({"days": "30", "limit": "10", "offset": "3"}, PagedQuery(days=30, limit=10, offset=3)),
        ({"offset": "2000000"}, PagedQuery(days=0, limit=100, offset=1_000_000)),
    ],
)
def test_parse_history_query_modes(params, expected):
    assert parse_history_query(params) == expected


def test_parse_uses_first_matching_parameter():
    assert parse_history_query([("days", "5"), ("Days", "9")]) == TimeOnlyQuery(days=5)
    assert parse_history_query([("days", ""), ("DAYS", "9")]) == TimeOnlyQuery(days=9)


@pytest.fixture
async def store(tmp_path):
    store = DailySummaryStore(db_path=tmp_path / "history.sqlite3")
    await store.upsert(DailySummaryRecord(JAN_1, 20.0, 10.0, 80.0, 40.0, 0.25))
    await store.upsert(DailySummaryRecord(JAN_1 + DAY, None, None, None, None, None))
    await store.upsert(DailySummaryRecord(JAN_1 + 2 * DAY, 0.0, -5.0, 95.0, 60.0, 0.0))
    return store


@pytest.mark.anyio
async def test_temperature_history_converts_to_fahrenheit(store):
    result = await query_history(store, "temperature", SimpleQuery(), now=JAN_1 + 3 * DAY)
    assert result["days"] == [
        {"day": JAN_1, "temp_high_F": pytest.approx(68.0), "temp_low_F": pytest.approx(50.0)},
        {"day": JAN_1 + DAY, "temp_high_F": None, "temp_low_F": None},
        {"day": JAN_1 + 2 * DAY, "temp_high_F": pytest.approx(32.0), "temp_low_F": pytest.approx(23.0)},
    ]


@pytest.mark.anyio
async def test_humidity_history_keeps_null_days(store):
    result = await query_history(store, "humidity", SimpleQuery(), now=JAN_1 + 3 * DAY)
    assert result["days"][1] == {"day": JAN_1 + DAY, "humidity_high": None, "humidity_low": None}
    assert result["days"][2]["humidity_high"] == 95.0


@pytest.mark.anyio
async def test_rain_history_skips_days_without_rain(store):
    result = await query_history(store, "rain", SimpleQuery(), now=JAN_1 + 3 * DAY)
    assert result == {
        "days": [
            {"day": JAN_1, "rain_in": 0.25},
            {"day": JAN_1 + 2 * DAY, "rain_in": 0.0},
        ]
    }


@pytest.mark.anyio
async def test_time_only_window(store):
    result = await query_history(store, "humidity", TimeOnlyQuery(days=1), now=JAN_1 + 2 * DAY + 3600)
    assert [entry["day"] for entry in result["days"]] == [JAN_1 + 2 * DAY]

    everything = await query_history(store, "humidity", TimeOnlyQuery(days=0), now=JAN_1 + 2 * DAY + 3600)
    assert len(everything["days"]) == 3


@pytest.mark.anyio
async def test_paged_query(store):
    result = await query_history(store, "temperature", PagedQuery(days=0, limit=1, offset=1), now=JAN_1 + 3 * DAY)
    assert [entry["day"] for entry in result["days"]] == [JAN_1 + DAY]

    windowed = await query_history(store, "temperature", PagedQuery(days=2, limit=5, offset=0), now=JAN_1 + 3 * DAY)
    assert [entry["day"] for entry in windowed["days"]] == [JAN_1 + DAY, JAN_1 + 2 * DAY]


@pytest.mark.anyio
async def test_paged_query_applies_the_day_window_before_paging(tmp_path):
    now = JAN_1 + 30 * DAY
    store = DailySummaryStore(db_path=tmp_path / "paged.sqlite3")
    await store.upsert(DailySummaryRecord(now - 10 * DAY, 18.0, 8.0, 70.0, 35.0, 0.5))
    await store.upsert(DailySummaryRecord(now - DAY, 22.0, 12.0, 60.0, 30.0, 0.0))

    query = parse_history_query({"days": "7", "limit": "1", "offset": "0"})
    assert query == PagedQuery(days=7, limit=1, offset=0)

    result = await query_history(store, "temperature", query, now=now)
    assert [entry["day"] for entry in result["days"]] == [now - DAY]


@pytest.mark.anyio
async def test_missing_store_yields_empty_history():
    assert await query_history(None, "rain", SimpleQuery(), now=JAN_1) == {"days": []}


@pytest.mark.anyio
async def test_unknown_metric_is_rejected(store):
    with pytest.raises(ValueError):
        await query_history(store, "pressure", SimpleQuery(), now=JAN_1)
