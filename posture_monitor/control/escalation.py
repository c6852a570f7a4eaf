"""Escalation & Adaptive Interval Controller

Decides how long to wait before the next sampling cycle and how intrusively to
remind the user. The sampling delay behaves like a congestion window: it doubles
while posture stays acceptable and snaps back to the initial value on a STRONG
cycle, the way a transport backs off and then hard-resets on loss.
"""

import logging
from dataclasses import replace
from typing import Optional, Tuple

from posture_monitor.models.enums import ReminderLevel
from posture_monitor.models.results import ControllerState
from posture_monitor.config.config_loader import config


logger = logging.getLogger(__name__)


def notify_level_from_bad_counter(bad_counter: int) -> ReminderLevel:
    """Map consecutive STRONG cycles to the escalation level to present.

    Separate from the score-derived level: this one only climbs through
    repeated STRONG cycles, so the user sees gentler reminders before an
    intrusive overlay.
    """
    if bad_counter <= 0:
        return ReminderLevel.NONE
    if bad_counter == 1:
        return ReminderLevel.GENTLE
    if bad_counter == 2:
        return ReminderLevel.MODERATE
    return ReminderLevel.STRONG


class EscalationController:
    """Tracks consecutive good/bad cycles and the adaptive sampling delay.

    Owned by the sampling scheduler and mutated once per completed cycle.

    Attributes:
        initial_delay: Delay after a reset, in seconds (5.0)
        max_delay: Upper bound on the delay, in seconds (60.0)
        backoff_multiplier: Growth factor per acceptable cycle past the threshold
        good_streak_threshold: Acceptable cycles before the delay starts growing
        state: Current ControllerState
    """

    def __init__(
        self,
        initial_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        backoff_multiplier: Optional[float] = None,
        good_streak_threshold: Optional[int] = None
    ):
        self.initial_delay = (
            initial_delay if initial_delay is not None
            else config.get('control.initial_delay', 5.0)
        )
        self.max_delay = (
            max_delay if max_delay is not None
            else config.get('control.max_delay', 60.0)
        )
        self.backoff_multiplier = (
            backoff_multiplier if backoff_multiplier is not None
            else config.get('control.backoff_multiplier', 2.0)
        )
        self.good_streak_threshold = (
            good_streak_threshold if good_streak_threshold is not None
            else config.get('control.good_streak_threshold', 3)
        )

        self.state = self._initial_state()

        logger.info(f"EscalationController initialized with initial_delay={self.initial_delay}s, "
                    f"max_delay={self.max_delay}s")

    def _initial_state(self) -> ControllerState:
        return ControllerState(good_counter=0, bad_counter=0, current_delay=self.initial_delay)

    @property
    def current_delay(self) -> float:
        return self.state.current_delay

    @property
    def notify_level(self) -> ReminderLevel:
        return notify_level_from_bad_counter(self.state.bad_counter)

    def update(self, level: ReminderLevel) -> Tuple[float, ReminderLevel]:
        """Fold one cycle's score-derived level into the controller state.

        Args:
            level: Reminder level derived from the cycle's score

        Returns:
            Tuple of (next delay in seconds, escalation level to present)
        """
        state = self.state

        if level == ReminderLevel.STRONG:
            state.bad_counter += 1
            state.good_counter = 0
            state.current_delay = self.initial_delay
        else:
            state.good_counter += 1
            state.bad_counter = 0

        if state.good_counter >= self.good_streak_threshold:
            state.current_delay = min(state.current_delay * self.backoff_multiplier, self.max_delay)

        notify = self.notify_level

        logger.debug(f"Controller update: level={level.name}, good={state.good_counter}, "
                     f"bad={state.bad_counter}, delay={state.current_delay:.1f}s, "
                     f"notify={notify.name}")

        return state.current_delay, notify

    def reset(self) -> None:
        """Return to the initial state (used when the device is inactive)"""
        self.state = self._initial_state()

    def snapshot(self) -> ControllerState:
        """Copy of the current state"""
        return replace(self.state)

    def restore(self, state: ControllerState) -> None:
        """Replace the current state with a snapshot"""
        self.state = replace(state)
