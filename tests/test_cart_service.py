"""Cart aggregate: merge-on-add, quantity updates against live stock, owner scoping."""

import pytest

from storefront.common.errors import InsufficientStockError, InvalidQuantityError, NotFoundError


class TestAddItem:
    def test_adding_same_product_twice_merges_into_one_line(self, cart, make_product):
        product = make_product(stock=10)

        cart.add_item(user_id="u1", product_id=product["id"], quantity=2)
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=3)

        content = cart.get_cart(user_id="u1")
        assert len(content["items"]) == 1
        assert content["items"][0]["quantity"] == 5
        assert line["quantity"] == 5

    def test_lines_are_per_user(self, cart, make_product):
        product = make_product()

        cart.add_item(user_id="u1", product_id=product["id"], quantity=1)
        cart.add_item(user_id="u2", product_id=product["id"], quantity=4)

        assert cart.get_cart(user_id="u1")["items"][0]["quantity"] == 1
        assert cart.get_cart(user_id="u2")["items"][0]["quantity"] == 4

    def test_unknown_product_is_not_found(self, cart):
        with pytest.raises(NotFoundError):
            cart.add_item(user_id="u1", product_id="missing", quantity=1)

    @pytest.mark.parametrize("quantity", [0, -1, "abc", None, 1.5, True, 2**31, 10**30, float("inf")])
    def test_rejects_invalid_quantity(self, cart, make_product, quantity):
        product = make_product()
        with pytest.raises(InvalidQuantityError):
            cart.add_item(user_id="u1", product_id=product["id"], quantity=quantity)
        assert cart.get_cart(user_id="u1")["items"] == []

    def test_stock_is_not_checked_when_adding(self, cart, make_product):
        product = make_product(stock=1)
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=5)
        assert line["quantity"] == 5


class TestUpdateQuantity:
    def test_updates_within_stock(self, cart, make_product):
        product = make_product(stock=5)
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=1)

        updated = cart.update_quantity(user_id="u1", line_id=line["id"], quantity=5)

        assert updated["quantity"] == 5

    def test_quantity_above_stock_fails_and_keeps_line(self, cart, make_product):
        product = make_product(stock=3)
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=2)

        with pytest.raises(InsufficientStockError) as excinfo:
            cart.update_quantity(user_id="u1", line_id=line["id"], quantity=4)

        assert excinfo.value.details["line_id"] == line["id"]
        assert excinfo.value.details["available"] == 3
        assert cart.get_cart(user_id="u1")["items"][0]["quantity"] == 2

    def test_zero_is_invalid(self, cart, make_product):
        product = make_product()
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=2)

        with pytest.raises(InvalidQuantityError):
            cart.update_quantity(user_id="u1", line_id=line["id"], quantity=0)

    def test_other_users_line_is_not_found(self, cart, make_product):
        product = make_product()
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=1)

        with pytest.raises(NotFoundError):
            cart.update_quantity(user_id="u2", line_id=line["id"], quantity=2)
        assert cart.get_cart(user_id="u1")["items"][0]["quantity"] == 1


class TestRemoveAndList:
    def test_remove_is_idempotent(self, cart, make_product):
        product = make_product()
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=1)

        cart.remove_item(user_id="u1", line_id=line["id"])
        cart.remove_item(user_id="u1", line_id=line["id"])

        assert cart.get_cart(user_id="u1")["items"] == []

    def test_remove_ignores_other_users_line(self, cart, make_product):
        product = make_product()
        line = cart.add_item(user_id="u1", product_id=product["id"], quantity=1)

        cart.remove_item(user_id="u2", line_id=line["id"])

        assert len(cart.get_cart(user_id="u1")["items"]) == 1

    def test_cart_shows_live_price(self, cart, catalog, make_product):
        product = make_product(price="10.00", stock=5)
        cart.add_item(user_id="u1", product_id=product["id"], quantity=2)

        catalog.update_product(product["id"], price="12.50")
        content = cart.get_cart(user_id="u1")

        assert content["items"][0]["product"]["price"] == 12.5
        assert content["subtotal"] == 25.0
        assert content["item_count"] == 2

    def test_deleting_product_drops_its_cart_lines(self, cart, catalog, make_product):
        product = make_product()
        cart.add_item(user_id="u1", product_id=product["id"], quantity=1)

        catalog.delete_product(product["id"])

        assert cart.get_cart(user_id="u1")["items"] == []
