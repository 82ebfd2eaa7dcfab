import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from app.models import UsageRecord
from app.store.usage import UsageRecorder

LINE_RE = re.compile(r"^\S+T\S+ \| caller-\d+ \| model-[abc] \| (success|error)$")


def test_line_format():
    ts = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    rec = UsageRecord(caller="1.2.3.4", model="gemini-2.5-flash", status="success", timestamp=ts)
    assert rec.to_line() == "2024-05-01T12:30:00+00:00 | 1.2.3.4 | gemini-2.5-flash | success\n"
    assert rec.day == "2024-05-01"


def test_partition_uses_utc_day(tmp_path):
    local = timezone(timedelta(hours=-5))
    ts = datetime(2024, 5, 1, 22, 0, tzinfo=local)  # 03:00 UTC next day
    recorder = UsageRecorder(tmp_path)
    recorder.append(UsageRecord(caller="c", model="m", status="success", timestamp=ts))
    assert (tmp_path / "usage-2024-05-02.log").exists()


def test_thousand_concurrent_appends(tmp_path):
    recorder = UsageRecorder(tmp_path)
    ts = datetime(2024, 1, 2, tzinfo=timezone.utc)
    records = [
        UsageRecord(caller=f"caller-{i}", model="model-" + "abc"[i % 3],
                    status="success" if i % 2 else "error", timestamp=ts)
        for i in range(1000)
    ]

    with ThreadPoolExecutor(max_workers=32) as pool:
        list(pool.map(recorder.append, records))

    lines = (tmp_path / "usage-2024-01-02.log").read_text().splitlines()
    assert len(lines) == 1000
    assert all(LINE_RE.match(line) for line in lines)
    assert {line.split(" | ")[1] for line in lines} == {f"caller-{i}" for i in range(1000)}


@pytest.mark.asyncio
async def test_notify_goes_through_writer_task(tmp_path):
    recorder = UsageRecorder(tmp_path)
    recorder.start()
    assert recorder.running
    for i in range(5):
        recorder.notify(UsageRecord(caller=f"c{i}", model="m", status="success"))
    await recorder.stop()

    assert not recorder.running
    files = list(tmp_path.glob("usage-*.log"))
    assert len(files) == 1
    assert len(files[0].read_text().splitlines()) == 5


def test_notify_without_writer_writes_inline(tmp_path):
    recorder = UsageRecorder(tmp_path)
    recorder.notify(UsageRecord(caller="c", model="m", status="error"))
    assert len(list(tmp_path.glob("usage-*.log"))) == 1


def test_write_failure_is_dropped(tmp_path, caplog):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    recorder = UsageRecorder(blocker)

    recorder.notify(UsageRecord(caller="c", model="m", status="success"))

    assert "Dropping usage record" in caplog.text


@pytest.mark.asyncio
async def test_write_failure_in_writer_does_not_kill_it(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    recorder = UsageRecorder(blocker)
    recorder.start()
    recorder.notify(UsageRecord(caller="c", model="m", status="success"))
    recorder.notify(UsageRecord(caller="c", model="m", status="success"))
    await recorder.stop()


def test_delimiters_in_fields_cannot_add_columns():
    ts = datetime(2024, 5, 1, tzinfo=timezone.utc)
    rec = UsageRecord(caller="1.1.1.1 | evil | forged", model="m\nx", status="", timestamp=ts)
    line = rec.to_line()
    assert line.count("\n") == 1
    assert line.rstrip("\n").split(" | ") == ["2024-05-01T00:00:00+00:00", "1.1.1.1___evil___forged", "m_x", "-"]
