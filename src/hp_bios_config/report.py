"""Enumeration and tally reports"""
import csv
import logging
from typing import Iterable, List, Optional, Tuple

from jinja2 import Template

from .bios import Outcome, RunTally

log = logging.getLogger("hp_bios_config.report")

TALLY_TEMPLATE = """{{ rule }}
BIOS SETTINGS SUMMARY{{ " (DRY RUN)" if tally.dry_run else "" }}
{{ rule }}
  Already set : {{ tally.already_set }}
{% if tally.dry_run %}
  Would apply : {{ tally.would_apply }}
{% else %}
  Applied     : {{ tally.applied }}
{% endif %}
  Failed      : {{ tally.failed }}
  Not found   : {{ tally.not_found }}
{% if failed %}
Failed settings:
{% for r in failed %}
  • {{ r.name }} = {{ r.desired }} ({{ r.status.name if r.status is not none else "UNKNOWN" }})
{% endfor %}
{% endif %}
{% if missing %}
Settings not found:
{% for r in missing %}
  • {{ r.name }}
{% endfor %}
{% endif %}
{{ rule }}
"""


def render_tally(tally: RunTally, width: int = 60) -> str:
    template = Template(TALLY_TEMPLATE, trim_blocks=True, lstrip_blocks=True)
    return template.render(
        tally=tally,
        rule="=" * width,
        failed=tally.by_outcome(Outcome.FAILED),
        missing=tally.by_outcome(Outcome.NOT_FOUND),
    )


def report_tally(tally: RunTally) -> str:
    """Print the tally and send the counts to the log"""
    text = render_tally(tally)
    print(text)
    for name, count in tally.counts().items():
        log.info(f"{name}: {count}")
    return text


def print_settings(rows: Iterable[Tuple[str, Optional[str]]]):
    for name, value in rows:
        print(f"{name} = {value if value is not None else ''}")


def write_csv(path: str, rows: Iterable[Tuple[str, Optional[str]]]) -> int:
    """
    Overwrite path with Name,Value rows, unquoted.

    Values never contain commas since the enumeration encoding is itself
    comma-separated.
    """
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_NONE, quotechar=None)
        writer.writerow(["Name", "Value"])
        for name, value in rows:
            writer.writerow([name, value if value is not None else ""])
            count += 1
    log.info(f"Exported {count} setting(s) to {path}")
    return count


def report_settings(rows: List[Tuple[str, Optional[str]]], csv_path: Optional[str] = None):
    """Enumeration report to a CSV file when a path is given, stdout otherwise"""
    if csv_path:
        write_csv(csv_path, rows)
    else:
        print_settings(rows)
        log.info(f"Listed {len(rows)} setting(s)")
