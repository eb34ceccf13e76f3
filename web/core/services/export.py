from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Optional

from .stats import (
    PERIOD_MONTH,
    PERIOD_WEEK,
    get_deck_performance,
    get_performance_by_difficulty,
    get_stats_by_period,
    get_summary,
)

EXPORT_FILENAME = 'flashcard_stats.csv'


def _minutes(seconds: int) -> int:
    return seconds // 60


def render_stats_csv(user, *, now: Optional[datetime] = None, weeks: int = 12, months: int = 12) -> str:
    """Render summary, period, difficulty and deck views as one CSV document."""
    summary = get_summary(user)
    series = get_stats_by_period(user, PERIOD_WEEK, weeks * 7, now=now) + get_stats_by_period(
        user, PERIOD_MONTH, months * 30, now=now
    )
    difficulties = get_performance_by_difficulty(user)
    decks = get_deck_performance(user)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')

    writer.writerow(['Date', 'Period', 'Study time (min)', 'Sessions', 'Cards reviewed', 'Accuracy (%)', 'XP'])
    for row in series:
        writer.writerow([
            row.date,
            row.period,
            _minutes(row.study_time),
            row.sessions,
            row.cards_reviewed,
            f'{row.accuracy:.1f}',
            row.xp,
        ])

    writer.writerow([])
    writer.writerow(['Summary'])
    writer.writerow(['Total study time (hours)', f'{summary.total_study_time / 3600:.1f}'])
    writer.writerow(['Total sessions', summary.total_sessions])
    writer.writerow(['Total cards reviewed', summary.total_cards])
    writer.writerow(['Average accuracy (%)', f'{summary.average_accuracy:.1f}'])
    writer.writerow(['Current streak', summary.study_streak])
    writer.writerow(['Total XP', summary.total_xp])
    writer.writerow(['Current level', summary.current_level])
    writer.writerow(['Decks created', summary.decks_created])
    writer.writerow(['Cards created', summary.cards_created])

    writer.writerow([])
    writer.writerow(['Performance by difficulty'])
    writer.writerow(['Difficulty', 'Count', 'Percentage (%)', 'Average time (s)'])
    for perf in difficulties:
        writer.writerow([perf.difficulty, perf.count, f'{perf.percentage:.1f}', f'{perf.average_time:.1f}'])

    writer.writerow([])
    writer.writerow(['Performance by deck'])
    writer.writerow(['Deck', 'Study time (min)', 'Sessions', 'Cards reviewed', 'Accuracy (%)'])
    for deck in decks:
        writer.writerow([
            deck.deck_name,
            _minutes(deck.study_time),
            deck.sessions,
            deck.cards_reviewed,
            f'{deck.accuracy:.1f}',
        ])

    return buffer.getvalue()
