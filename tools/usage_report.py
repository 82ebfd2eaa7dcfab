import sys
from collections import Counter, defaultdict
from pathlib import Path
from typing import Dict

# line format: <ISO8601> | <caller> | <model> | <status>


def summarize(log_dir: Path) -> Dict[str, Dict[str, int]]:
    """Per-model counts of each status across every usage-*.log partition."""
    stats: Dict[str, Counter] = defaultdict(Counter)
    for path in sorted(Path(log_dir).glob("usage-*.log")):
        for line in path.read_text(encoding="utf-8").splitlines():
            fields = [f.strip() for f in line.split(" | ")]
            if len(fields) != 4:
                continue  # malformed
            _, _, model, status = fields
            stats[model][status] += 1
    return {model: dict(counts) for model, counts in stats.items()}


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    log_dir = Path(argv[0]) if argv else Path("logs")
    report = summarize(log_dir)
    if not report:
        print(f"No usage records under {log_dir.resolve()}")
        return 1
    for model, counts in sorted(report.items()):
        total = sum(counts.values())
        detail = ", ".join(f"{k}={v}" for k, v in sorted(counts.items()))
        print(f"{model}: {total} ({detail})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
