from decimal import Decimal

import pytest

from storefront.domain.errors import NotFoundError, ValidationError


class TestAddLine:
    def test_same_variant_merges_by_summing(self, cart_service, customer, product_a):
        cart_service.add_line(customer.id, product_a.id, 2, size="M", color="red")
        line = cart_service.add_line(customer.id, product_a.id, 3, size="M", color="red")

        cart = cart_service.list_lines(customer.id)
        assert len(cart["items"]) == 1
        assert line["quantity"] == 5
        assert cart["total"] == Decimal("25000.00")

    def test_other_variant_is_its_own_line(self, cart_service, customer, product_a):
        cart_service.add_line(customer.id, product_a.id, 1, size="M")
        cart_service.add_line(customer.id, product_a.id, 1, size="L")
        cart_service.add_line(customer.id, product_a.id, 1)

        assert len(cart_service.list_lines(customer.id)["items"]) == 3

    def test_quantity_defaults_to_one(self, cart_service, customer, product_a):
        line = cart_service.add_line(customer.id, product_a.id)

        assert line["quantity"] == 1
        assert line["unit_price"] == Decimal("5000.00")
        assert line["size"] is None

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two", True])
    def test_invalid_quantity_rejected(self, cart_service, customer, product_a, quantity):
        with pytest.raises(ValidationError):
            cart_service.add_line(customer.id, product_a.id, quantity)

        assert cart_service.list_lines(customer.id)["items"] == []

    def test_unknown_product(self, cart_service, customer):
        with pytest.raises(NotFoundError):
            cart_service.add_line(customer.id, 999, 1)


def test_lines_newest_first(cart_service, customer, product_a, product_b):
    first = cart_service.add_line(customer.id, product_a.id, 1)
    second = cart_service.add_line(customer.id, product_b.id, 1)

    ids = [line["id"] for line in cart_service.list_lines(customer.id)["items"]]
    assert ids == [second["id"], first["id"]]


def test_update_line(cart_service, customer, product_a):
    line = cart_service.add_line(customer.id, product_a.id, 1)

    updated = cart_service.update_line(customer.id, line["id"], 4)

    assert updated["quantity"] == 4
    assert updated["line_total"] == Decimal("20000.00")


def test_lines_of_other_customers_are_not_found(cart_service, customer, other_customer, product_a):
    line = cart_service.add_line(customer.id, product_a.id, 1)

    with pytest.raises(NotFoundError):
        cart_service.update_line(other_customer.id, line["id"], 2)
    with pytest.raises(NotFoundError):
        cart_service.remove_line(other_customer.id, line["id"])

    assert cart_service.list_lines(customer.id)["items"][0]["quantity"] == 1


def test_remove_and_clear(cart_service, customer, other_customer, product_a, product_b):
    line = cart_service.add_line(customer.id, product_a.id, 1)
    cart_service.add_line(customer.id, product_b.id, 1)
    cart_service.add_line(other_customer.id, product_b.id, 1)

    cart_service.remove_line(customer.id, line["id"])
    assert len(cart_service.list_lines(customer.id)["items"]) == 1

    assert cart_service.clear_all(customer.id) == 1
    assert cart_service.list_lines(customer.id)["items"] == []
    assert len(cart_service.list_lines(other_customer.id)["items"]) == 1
