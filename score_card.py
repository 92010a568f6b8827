# -*- coding: utf-8 -*-
########################
# score_card.py
########################
# Purpose:
# - Plain-text score card built from a ScoreRecord and its ReplayAnalysis.
# - The description holds the score body: recorded Wife%, max combo, skillset SSRs, judgements and holds.
# - The chat host or web client decides how to present the sections.
#
# Design notes:
# - Sections whose data is unavailable are omitted, never rendered as errors.
# - Wifescores above 99.7% use 4 decimals, otherwise 2.
# - The score body is a fixed-width two-column table so chat clients keep the columns aligned.
# - The score view link is written only when the owning user id is known.
#
########################
# Interfaces:
# Public dataclasses:
# - ScoreCardField(title: str, body: str)
# - ScoreCard(scorekey: str, title: str, description: str, footer: Optional[str],
#             fields: list[ScoreCardField], warnings: list[str])
#
# Public functions:
# - score_view_url(scorekey, user_id) -> str
# - score_body_text(record, alternative_comparison=None, *, user_id=None, show_modifiers=False) -> str
# - score_comparisons_text(record, analysis) -> Optional[str]
# - tap_speeds_text(analysis) -> Optional[str]
# - combos_text(analysis) -> str
# - build_score_card(record, analysis, *, expected_username=None, expected_user_id=None,
#                    show_modifiers=False) -> ScoreCard
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from replay_analyzer import ReplayAnalysis, ScoringSystemComparison
from score_models import ScoreRecord
from wife_model import Wifescore

HIGH_PRECISION_THRESHOLD_PERCENT = 99.7
INACCURACY_TOLERANCE_PERCENT = 0.01

SCOREKEY_COLLISION_WARNING = (
    "Multiple scores were assigned the same unique identifier (scorekey), "
    "so you are seeing the wrong score here. Sorry!"
)

SCORE_VIEW_URL_TEMPLATE = "https://etternaonline.com/score/view/{scorekey}{user_id}"

COLUMN_SEPARATOR = "\u23d0"


@dataclass(frozen=True)
class ScoreCardField:
    title: str
    body: str


@dataclass(frozen=True)
class ScoreCard:
    scorekey: str
    title: str
    description: str = ""
    footer: Optional[str] = None
    fields: List[ScoreCardField] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _percent_text(wifescore: Optional[Wifescore], digits: int) -> str:
    if wifescore is None:
        return "n/a"
    return f"{wifescore.as_percent():.{digits}f}%"


def _alternative_suffix(
    alternative: Optional[ScoringSystemComparison],
    attribute_name: str,
    digits: int,
) -> str:
    if alternative is None:
        return ""
    value: Optional[Wifescore] = getattr(alternative, attribute_name)
    return f", {_percent_text(value, digits)} on {alternative.judge.name}"


def score_view_url(scorekey: str, user_id: int) -> str:
    return SCORE_VIEW_URL_TEMPLATE.format(scorekey=scorekey, user_id=int(user_id))


def _body_cell(value: Optional[float], *, digits: int = 2, percent: bool = False) -> str:
    # Left column values are 8 characters wide: 5 for the number, then "%  " or 3 spaces.
    if value is None:
        return "-".ljust(8)
    return f"{float(value):<5.{digits}f}" + ("%  " if percent else "   ")


def _body_row(left_label: str, left_cell: str, right_label: Optional[str] = None, right_value: object = None) -> str:
    row = f"{left_label:>12}: {left_cell}{COLUMN_SEPARATOR}"
    if right_label is None:
        return row
    right_text = "-" if right_value is None else str(right_value)
    return f"{row}{right_label:>15}: {right_text}"


def score_body_text(
    record: ScoreRecord,
    alternative_comparison: Optional[ScoringSystemComparison] = None,
    *,
    user_id: Optional[int] = None,
    show_modifiers: bool = False,
) -> str:
    """The recorded score as a two-column table: Wife%, combo and SSRs left, judgements and holds right.

    With an alternative comparison, a second Wife line shows the Wife3 rescore on that judge.
    """
    parts: List[str] = []
    if user_id is not None:
        parts.append(score_view_url(record.scorekey, user_id) + "\n")
    if show_modifiers and record.modifiers:
        parts.append(f"```\n{record.modifiers}\n```\n")

    judgements = record.judgements
    marvelous = judgements.marvelous if judgements is not None else None

    rows: List[str] = []
    wife_cell = _body_cell(record.wifescore, percent=True)
    if alternative_comparison is not None:
        alternative_wife3 = alternative_comparison.wife3
        rows.append(_body_row("Wife", wife_cell))
        rows.append(
            _body_row(
                f"Wife {alternative_comparison.judge.name}",
                _body_cell(alternative_wife3.as_percent() if alternative_wife3 is not None else None, percent=True),
                "Marvelous",
                marvelous,
            )
        )
    else:
        rows.append(_body_row("Wife", wife_cell, "Marvelous", marvelous))

    skillsets = record.skillsets
    overall = skillsets.overall if skillsets is not None else record.ssr

    def skillset(name: str) -> Optional[float]:
        return getattr(skillsets, name) if skillsets is not None else None

    def judgement(name: str) -> Optional[int]:
        return getattr(judgements, name) if judgements is not None else None

    rows.extend(
        [
            _body_row("Max Combo", _body_cell(record.max_combo, digits=0), "Perfect", judgement("perfect")),
            _body_row("Overall", _body_cell(overall), "Great", judgement("great")),
            _body_row("Stream", _body_cell(skillset("stream")), "Good", judgement("good")),
            _body_row("Stamina", _body_cell(skillset("stamina")), "Bad", judgement("bad")),
            _body_row("Jumpstream", _body_cell(skillset("jumpstream")), "Miss", judgement("miss")),
            _body_row("Handstream", _body_cell(skillset("handstream")), "Hit Mines", record.hit_mines),
            _body_row("Jacks", _body_cell(skillset("jackspeed")), "Held Holds", record.held_holds),
            _body_row("Chordjack", _body_cell(skillset("chordjack")), "Dropped Holds", record.dropped_holds),
            _body_row("Technical", _body_cell(skillset("technical")), "Missed Holds", record.missed_holds),
        ]
    )
    parts.append("```nim\n" + "\n".join(rows) + "\n```")
    return "".join(parts)


def score_comparisons_text(record: ScoreRecord, analysis: ReplayAnalysis) -> Optional[str]:
    reference = analysis.reference_comparison
    if reference.wife3 is None:
        return None

    digits = 4 if reference.wife3.as_percent() > HIGH_PRECISION_THRESHOLD_PERCENT else 2
    alternative = analysis.alternative_comparison

    lines: List[str] = []
    if record.wifescore is not None and abs(reference.wife3.as_percent() - record.wifescore) > INACCURACY_TOLERANCE_PERCENT:
        lines.append("_Note: these calculated scores are slightly inaccurate_")

    lines.append(f"**Wife2**: {_percent_text(reference.wife2, digits)}{_alternative_suffix(alternative, 'wife2', digits)}")
    lines.append(f"**Wife3**: {_percent_text(reference.wife3, digits)}{_alternative_suffix(alternative, 'wife3', digits)}")

    if reference.wife3_zero_mean is not None and analysis.mean_offset is not None:
        lines.append(
            f"**Wife3**: {_percent_text(reference.wife3_zero_mean, digits)}"
            f"{_alternative_suffix(alternative, 'wife3_zero_mean', digits)}"
            f" (mean of {analysis.mean_offset * 1000.0:.1f}ms corrected)"
        )
    if reference.wife3_matching is not None:
        lines.append(
            f"**Wife3**: {_percent_text(reference.wife3_matching, digits)}"
            f"{_alternative_suffix(alternative, 'wife3_matching', digits)} (no CB rushes)"
        )
    return "\n".join(lines)


def tap_speeds_text(analysis: ReplayAnalysis) -> Optional[str]:
    lines: List[str] = []
    if analysis.fastest_jack_speed is not None:
        lines.append(f"Fastest jack over a course of 20 notes: {analysis.fastest_jack_speed:.2f} NPS")
    if analysis.fastest_nps is not None:
        lines.append(f"Fastest total NPS over a course of 100 notes: {analysis.fastest_nps:.2f} NPS")
    return "\n".join(lines) or None


def combos_text(analysis: ReplayAnalysis) -> str:
    combos = analysis.combos
    return "\n".join(
        [
            f"Longest combo: {combos.longest_combo}",
            f"Longest perfect combo: {combos.longest_perfect_combo}",
            f"Longest marvelous combo: {combos.longest_marvelous_combo}",
            f"Longest 100% combo: {combos.longest_100_combo}",
        ]
    )


def build_score_card(
    record: ScoreRecord,
    analysis: Optional[ReplayAnalysis],
    *,
    expected_username: Optional[str] = None,
    expected_user_id: Optional[int] = None,
    show_modifiers: bool = False,
) -> ScoreCard:
    """Assemble the card. A record owned by someone other than expected means a scorekey collision.

    The score view link needs the owner's user id, so it is only shown when expected_user_id is given.
    """
    collided = False
    if expected_username is not None and record.username is not None:
        collided = record.username.casefold() != expected_username.casefold()
    if expected_user_id is not None and int(record.user_id) != int(expected_user_id):
        collided = True

    warnings: List[str] = []
    if collided:
        warnings.append(SCOREKEY_COLLISION_WARNING)

    fields: List[ScoreCardField] = []
    if analysis is not None:
        comparisons = score_comparisons_text(record, analysis)
        if comparisons is not None:
            fields.append(ScoreCardField(title="Score comparisons", body=comparisons))
        speeds = tap_speeds_text(analysis)
        if speeds is not None:
            fields.append(ScoreCardField(title="Tap speeds", body=speeds))
        fields.append(ScoreCardField(title="Combos", body=combos_text(analysis)))
        if analysis.fun_facts:
            fields.append(ScoreCardField(title="Fun facts", body="\n".join(analysis.fun_facts)))

    description = score_body_text(
        record,
        analysis.alternative_comparison if analysis is not None else None,
        user_id=expected_user_id,
        show_modifiers=show_modifiers,
    )

    return ScoreCard(
        scorekey=record.scorekey,
        title=record.song or record.scorekey,
        description=description,
        footer=f"Played by {record.username}" if record.username else None,
        fields=fields,
        warnings=warnings,
    )
