from herokeeper.heropoints import (
    ALL_CHARACTERS,
    NO_CHARACTER,
    NO_TIMER_BUTTON,
    TIMER_BUTTON,
    AwardAction,
    BulkAction,
    WorkflowResult,
    resolve_response,
)
from herokeeper.heropoints.resolver import (
    ACTION_FIELD,
    AMOUNT_FIELD,
    CHARACTER_FIELD,
    MINUTES_FIELD,
    parse_int,
)


def result(button=TIMER_BUTTON, **fields):
    names = {
        "action": ACTION_FIELD,
        "amount": AMOUNT_FIELD,
        "character": CHARACTER_FIELD,
        "minutes": MINUTES_FIELD,
    }
    return WorkflowResult(button=button, fields={names[k]: v for k, v in fields.items()})


class TestParseInt:
    def test_values(self):
        assert parse_int(" 12 ") == 12
        assert parse_int(7) == 7
        assert parse_int("abc") is None
        assert parse_int("") is None
        assert parse_int(None) is None

    def test_reads_leading_integer(self):
        assert parse_int("1.5") == 1
        assert parse_int("12 min") == 12
        assert parse_int("-3") == -3
        assert parse_int("1_000") == 1

    def test_only_ascii_digits(self):
        assert parse_int("١٢") is None
        assert parse_int("１２") is None

    def test_decimal_minutes_start_a_timer(self):
        assert resolve_response(result(minutes="2.5"), max_minutes=60).new_timer_minutes == 2


class TestResolveResponse:
    def test_closed_without_button_awards_nothing(self):
        resolution = resolve_response(WorkflowResult(button=None), max_minutes=60)

        assert resolution.action == AwardAction.ignore()
        assert resolution.single_award == NO_CHARACTER
        assert resolution.new_timer_minutes == 0

    def test_timer_minutes_are_clamped(self):
        assert resolve_response(result(minutes="90"), max_minutes=60).new_timer_minutes == 60
        assert resolve_response(result(minutes="-3"), max_minutes=60).new_timer_minutes == 0
        assert resolve_response(result(minutes="25"), max_minutes=60).new_timer_minutes == 25

    def test_non_numeric_minutes_mean_no_timer(self):
        assert resolve_response(result(minutes="soon"), max_minutes=60).new_timer_minutes == 0

    def test_no_timer_button_ignores_minutes(self):
        resolution = resolve_response(result(NO_TIMER_BUTTON, minutes="30"), max_minutes=60)
        assert resolution.new_timer_minutes == 0

    def test_bulk_actions(self):
        reset = resolve_response(result(action="RESET", amount="1"), max_minutes=60)
        add = resolve_response(result(action="add", amount="2"), max_minutes=60)

        assert reset.action == AwardAction(BulkAction.RESET, 1)
        assert add.action == AwardAction(BulkAction.ADD, 2)

    def test_bad_amount_or_action_is_ignored(self):
        bad_amount = resolve_response(result(action="ADD", amount="x"), max_minutes=60)
        bad_action = resolve_response(result(action="DOUBLE", amount="1"), max_minutes=60)

        assert bad_amount.action.kind is BulkAction.IGNORE
        assert bad_action.action.kind is BulkAction.IGNORE

    def test_single_award_targets(self):
        assert resolve_response(result(character="all"), max_minutes=60).single_award == (
            ALL_CHARACTERS
        )
        assert resolve_response(result(character=""), max_minutes=60).single_award == (
            NO_CHARACTER
        )
        assert resolve_response(result(character="c-1"), max_minutes=60).single_award == "c-1"
