# -*- coding: utf-8 -*-
########################
# wife_model.py
########################
# Purpose:
# - Per-note wife point formulas (Wife2 and Wife3) used for replay rescoring.
# - Wifescore value type (proportion with percent view).
#
# Design notes:
# - Points are normalized so a perfect hit is worth 1.0 (the game's raw values are halved).
# - Each formula carries its own miss, mine hit and hold drop weights.
# - Keep this module pure and deterministic.
#
########################
# Interfaces:
# Public dataclasses:
# - Wifescore(proportion: float)
#   - as_percent() -> float
#
# Public classes:
# - class WifeFormula (base)
#   - name, MISS_WEIGHT, MINE_HIT_WEIGHT, HOLD_DROP_WEIGHT
#   - points(deviation_seconds: Optional[float], judge: Judge) -> float
# - class Wife2(WifeFormula)
# - class Wife3(WifeFormula)
#
# Inputs:
# - Hit deviation in seconds (None for a miss) and a judge (timing scale).
#
# Outputs:
# - Wife points per note, consumed by replay_analyzer.py.
#
########################

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from judge import J4, J9, Judge


@dataclass(frozen=True)
class Wifescore:
    proportion: float

    def as_percent(self) -> float:
        return float(self.proportion) * 100.0

    def __format__(self, format_spec: str) -> str:
        return format(self.as_percent(), format_spec)


class WifeFormula:
    name = "wife"
    MISS_WEIGHT = 0.0
    MINE_HIT_WEIGHT = 0.0
    HOLD_DROP_WEIGHT = 0.0

    def points(self, deviation_seconds: Optional[float], judge: Judge) -> float:
        raise NotImplementedError


class Wife2(WifeFormula):
    name = "Wife2"
    MISS_WEIGHT = -8.0 / 2.0
    MINE_HIT_WEIGHT = -8.0 / 2.0
    HOLD_DROP_WEIGHT = -6.0 / 2.0

    def points(self, deviation_seconds: Optional[float], judge: Judge) -> float:
        if deviation_seconds is None:
            return self.MISS_WEIGHT

        deviation_ms = abs(float(deviation_seconds)) * 1000.0
        average_deviation_ms = 95.0 * float(judge.timing_scale)

        y = 1.0 - 2.0 ** (-1.0 * deviation_ms * deviation_ms / (average_deviation_ms * average_deviation_ms))
        y = y * y
        raw_points = (2.0 - -8.0) * (1.0 - y) + -8.0
        return raw_points / 2.0


class Wife3(WifeFormula):
    name = "Wife3"
    MISS_WEIGHT = -5.5 / 2.0
    MINE_HIT_WEIGHT = -7.0 / 2.0
    HOLD_DROP_WEIGHT = -4.5 / 2.0

    _J_POW = 0.75
    _MAX_POINTS = 2.0
    _MAX_BOO_WEIGHT_MS = 180.0

    def points(self, deviation_seconds: Optional[float], judge: Judge) -> float:
        if deviation_seconds is None:
            return self.MISS_WEIGHT

        timing_scale = float(judge.timing_scale)
        deviation_ms = abs(float(deviation_seconds)) * 1000.0
        ridiculous_ms = 5.0 * timing_scale
        zero_ms = 65.0 * timing_scale ** self._J_POW
        spread_ms = 22.7 * timing_scale ** self._J_POW

        if deviation_ms <= ridiculous_ms:
            raw_points = self._MAX_POINTS
        elif deviation_ms <= zero_ms:
            raw_points = self._MAX_POINTS * math.erf((zero_ms - deviation_ms) / spread_ms)
        elif deviation_ms <= self._MAX_BOO_WEIGHT_MS:
            raw_points = (deviation_ms - zero_ms) * (-5.5) / (self._MAX_BOO_WEIGHT_MS - zero_ms)
        else:
            return self.MISS_WEIGHT
        return raw_points / 2.0


WIFE2 = Wife2()
WIFE3 = Wife3()


def _run_unit_tests() -> None:
    assert WIFE3.points(0.0, J4) == 1.0
    assert WIFE3.points(0.004, J4) == 1.0
    assert WIFE3.points(None, J4) == Wife3.MISS_WEIGHT
    assert WIFE3.points(0.5, J4) == Wife3.MISS_WEIGHT
    assert abs(WIFE3.points(0.065, J4)) < 1e-9
    assert WIFE3.points(0.03, J9) < WIFE3.points(0.03, J4)

    assert abs(WIFE2.points(0.0, J4) - 1.0) < 1e-9
    assert WIFE2.points(0.05, J4) < 1.0
    assert WIFE2.points(None, J4) == -4.0

    assert f"{Wifescore(0.9312):.2f}" == "93.12"


if __name__ == "__main__":
    _run_unit_tests()
    print("wife_model.py: ok")
