"""Points awarded for event results."""

from dataclasses import dataclass

from .models import Event, EventResult


NON_PARTICIPATION_POINTS = {
    Event.Mode.INDIVIDUAL: -3,
    Event.Mode.GROUP: -10,
}

POSITION_POINTS = {
    Event.Mode.INDIVIDUAL: {
        EventResult.Position.FIRST: 5,
        EventResult.Position.SECOND: 3,
        EventResult.Position.THIRD: 1,
    },
    Event.Mode.GROUP: {
        EventResult.Position.FIRST: 10,
        EventResult.Position.SECOND: 5,
        EventResult.Position.THIRD: 0,
    },
}


@dataclass
class ScoreResult:
    points: int
    position: str
    participation: str


def calculate_points(mode: str, participation: str, position: str) -> ScoreResult:
    """Return the points for a result; non-participation always resets the position."""

    if participation == EventResult.Participation.DID_NOT_PARTICIPATE:
        return ScoreResult(
            points=NON_PARTICIPATION_POINTS[Event.Mode(mode)],
            position=EventResult.Position.NONE,
            participation=participation,
        )

    points = POSITION_POINTS[Event.Mode(mode)].get(EventResult.Position(position), 0)
    return ScoreResult(points=points, position=position, participation=participation)


def points_for(mode: str, participation: str, position: str) -> int:
    return calculate_points(mode, participation, position).points
