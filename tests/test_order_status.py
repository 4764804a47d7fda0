import pytest

from storefront.domain.errors import InvalidTransitionError
from storefront.domain.order_status import OrderStatus, check_transition


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "processing"),
        ("processing", "shipped"),
        ("shipped", "delivered"),
        ("pending", "shipped"),
        ("pending", "cancelled"),
        ("processing", "cancelled"),
        ("shipped", "cancelled"),
    ],
)
def test_allowed_transitions(current, target):
    check_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        ("processing", "pending"),
        ("shipped", "processing"),
        ("shipped", "pending"),
        ("pending", "pending"),
    ],
)
def test_backward_or_same_rejected(current, target):
    with pytest.raises(InvalidTransitionError) as exc:
        check_transition(current, target)

    assert exc.value.details == {"current": current, "target": target}


@pytest.mark.parametrize("terminal", ["delivered", "cancelled"])
@pytest.mark.parametrize("target", [s.value for s in OrderStatus])
def test_terminal_states_accept_nothing(terminal, target):
    with pytest.raises(InvalidTransitionError):
        check_transition(terminal, target)


def test_delivered_to_processing_rejected():
    with pytest.raises(InvalidTransitionError) as exc:
        check_transition("delivered", "processing")

    assert exc.value.status_code == 409
