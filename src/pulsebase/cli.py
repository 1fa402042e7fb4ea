"""CLI for the pulsebase scoring engine."""

from __future__ import annotations

import json
import logging
import re
from datetime import date

import click

from pulsebase.exceptions import PulsebaseError


class _DateParam(click.ParamType):
    name = "date"

    def convert(self, value, param, ctx):
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(value)
        except ValueError:
            self.fail(f"{value!r} is not an ISO date (YYYY-MM-DD)", param, ctx)


DATE = _DateParam()

_GOAL_RE = re.compile(r"^(?P<metric>\w+)\s*(?P<op>>=|<=|==)\s*(?P<target>-?\d+(\.\d+)?)$")


def _load(file: str, config_path: str | None):
    from pulsebase.config import DEFAULT_CONFIG, load_config
    from pulsebase.io import load_samples

    config = load_config(config_path) if config_path else DEFAULT_CONFIG
    return load_samples(file), config


def _emit(data, output: str | None) -> None:
    text = json.dumps(data, indent=2)
    if output:
        with open(output, "w") as f:
            f.write(text + "\n")
        click.echo(f"Wrote {output}")
    else:
        click.echo(text)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log scoring decisions to stderr.")
def main(verbose: bool) -> None:
    """pulsebase: recovery, strain and sleep scores from daily samples."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--as-of", type=DATE, default=None, help="Day to score (default: last day).")
@click.option("--config", "config_path", type=click.Path(exists=True), default=None,
              help="JSON scoring configuration.")
@click.option("--hours-needed", type=float, default=None, help="Nightly sleep need in hours.")
@click.option("--output", "-o", default=None, help="Write JSON to this file.")
@click.option("--store", default=None, help="Append every scored day to this JSONL store.")
def score(
    file: str,
    as_of: date | None,
    config_path: str | None,
    hours_needed: float | None,
    output: str | None,
    store: str | None,
) -> None:
    """Score a day of a sample file and print it as JSON."""
    from pulsebase.analytics.monitor import monitor_day
    from pulsebase.analytics.pipeline import run_pipeline
    from pulsebase.store import JsonlScoreStore

    try:
        samples, config = _load(file, config_path)
        records = run_pipeline(samples, config, hours_needed, end=as_of)
    except PulsebaseError as e:
        raise click.ClickException(str(e)) from e

    if not records:
        raise click.ClickException("No samples to score.")
    target = records[-1]
    if as_of is not None and target.day != as_of:
        raise click.ClickException(f"No sample for {as_of}.")

    if store:
        score_store = JsonlScoreStore(store)
        for record in records:
            score_store.save_day(record)

    data = target.to_dict()
    data["monitor"] = monitor_day(samples, target, config).to_dict()
    _emit(data, output)


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--week-of", type=DATE, required=True, help="Any day in the week.")
@click.option("--config", "config_path", type=click.Path(exists=True), default=None,
              help="JSON scoring configuration.")
@click.option("--compare", is_flag=True, help="Compare against the previous week.")
def week(file: str, week_of: date, config_path: str | None, compare: bool) -> None:
    """Summarize the calendar week containing --week-of."""
    from pulsebase.analytics.pipeline import run_pipeline
    from pulsebase.analytics.summary import (
        aggregate_week,
        compare_weeks,
        format_week_range,
        previous_week_start,
        week_start_for,
    )

    try:
        samples, config = _load(file, config_path)
        records = run_pipeline(samples, config)
        start = week_start_for(week_of, config.first_weekday)
        summary = aggregate_week(records, start, config.first_weekday, config)
        data = summary.to_dict()
        data["label"] = format_week_range(start)
        if compare:
            prev = aggregate_week(
                records, previous_week_start(start), config.first_weekday, config
            )
            comparison = compare_weeks(summary, prev)
            data["comparison"] = {
                "recovery": comparison.recovery_trend,
                "strain": comparison.strain_trend,
                "sleep": comparison.sleep_trend,
                "consistency": comparison.consistency_trend,
                "insight": comparison.overall_insight,
            }
    except PulsebaseError as e:
        raise click.ClickException(str(e)) from e

    _emit(data, None)


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--goal", "goal_specs", multiple=True,
              help='Daily goal such as "sleep_hours>=7" (repeatable).')
@click.option("--config", "config_path", type=click.Path(exists=True), default=None,
              help="JSON scoring configuration.")
def patterns(file: str, goal_specs: tuple[str, ...], config_path: str | None) -> None:
    """Detect correlations between behaviours and outcomes."""
    from pulsebase.analytics.patterns import detect_patterns
    from pulsebase.analytics.pipeline import run_pipeline
    from pulsebase.models import Goal

    goals = []
    for spec in goal_specs:
        m = _GOAL_RE.match(spec.strip())
        if m is None:
            raise click.BadParameter(f"cannot parse goal {spec!r}", param_hint="--goal")
        goals.append(Goal(
            name=spec.strip(),
            metric=m.group("metric"),
            target=float(m.group("target")),
            comparison=m.group("op"),
        ))

    try:
        samples, config = _load(file, config_path)
        records = run_pipeline(samples, config)
        found = detect_patterns(records, goals, config)
    except PulsebaseError as e:
        raise click.ClickException(str(e)) from e

    if not found:
        click.echo("No patterns detected.")
        return
    _emit([p.to_dict() for p in found], None)


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--start", type=DATE, default=None, help="First day (default: first sample).")
@click.option("--end", type=DATE, default=None, help="Last day (default: last sample).")
def gaps(file: str, start: date | None, end: date | None) -> None:
    """List missing days and missing signals."""
    from pulsebase.analytics.quality import assess_coverage, detect_gaps

    try:
        samples, _config = _load(file, None)
        if not samples:
            raise click.ClickException("No samples in file.")
        start = start or samples[0].day
        end = end or samples[-1].day
        found = detect_gaps(samples, start, end)
    except PulsebaseError as e:
        raise click.ClickException(str(e)) from e

    in_range = [s for s in samples if start <= s.day <= end]
    _emit({
        "start": start.isoformat(),
        "end": end.isoformat(),
        "coverage": assess_coverage(in_range).to_dict(),
        "gaps": [g.to_dict() for g in found],
    }, None)


if __name__ == "__main__":
    main()
