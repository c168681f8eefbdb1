import pytest

from storefront.common.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError


class TestStock:
    def test_decrement(self, catalog, make_product):
        product = make_product(stock=3)
        assert catalog.decrement_stock(product["id"], 2)["stock"] == 1

    def test_decrement_never_goes_negative(self, catalog, make_product):
        product = make_product(stock=1)
        with pytest.raises(InsufficientStockError) as excinfo:
            catalog.decrement_stock(product["id"], 2)
        assert excinfo.value.details["available"] == 1
        assert catalog.get_product(product["id"])["stock"] == 1

    def test_admin_set_is_absolute(self, catalog, make_product):
        product = make_product(stock=3)
        assert catalog.update_product(product["id"], stock=10)["stock"] == 10

    def test_admin_set_with_stale_expectation_conflicts(self, catalog, make_product):
        product = make_product(stock=3)
        catalog.decrement_stock(product["id"], 1)

        with pytest.raises(ConflictError):
            catalog.update_product(product["id"], stock=10, expected_stock=3)

        assert catalog.get_product(product["id"])["stock"] == 2
        assert catalog.update_product(product["id"], stock=10, expected_stock=2)["stock"] == 10

    @pytest.mark.parametrize("stock", [-1, 2.7, 2**31, "many"])
    def test_invalid_stock_rejected(self, catalog, make_product, stock):
        product = make_product(stock=3)
        with pytest.raises(ValidationError):
            catalog.update_product(product["id"], stock=stock)
        assert catalog.get_product(product["id"])["stock"] == 3

    def test_fractional_stock_rejected_on_create(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_product(name="Half", price="1", stock=2.7)

    def test_integral_float_stock_accepted(self, catalog):
        assert catalog.create_product(name="Whole", price="1", stock=4.0)["stock"] == 4


class TestProducts:
    @pytest.mark.parametrize("price", ["-1", "abc", None, "NaN", "1e400", "10000000000"])
    def test_invalid_price(self, catalog, price):
        with pytest.raises(ValidationError):
            catalog.create_product(name="Bad", price=price)

    def test_unknown_status(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_product(name="Bad", price="1", status="archived")

    def test_storefront_lists_active_only(self, catalog, make_product):
        active = make_product(name="On")
        make_product(name="Off", status="inactive")
        make_product(name="Gone", status="sold_out")

        listed = catalog.list_products()

        assert [p["id"] for p in listed["items"]] == [active["id"]]
        assert catalog.list_products(status=None)["total"] == 3

    def test_missing_product(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.get_product("missing")

    def test_partial_update(self, catalog, make_product):
        product = make_product(name="Old", price="5.00", stock=2)
        updated = catalog.update_product(product["id"], name="New")
        assert (updated["name"], updated["price"], updated["stock"]) == ("New", 5.0, 2)

    def test_largest_price_is_accepted(self, catalog):
        assert catalog.create_product(name="Yacht", price="9999999999.99")["price"] == 9999999999.99


class TestCategoriesAndFeatured:
    def test_filter_by_category_slug_or_name(self, catalog, make_product):
        lamps = catalog.create_category(name="Lamps")
        catalog.create_category(name="Chairs", slug="chairs")
        lamp = catalog.create_product(name="Desk lamp", price="20", category=lamps["slug"])
        catalog.create_product(name="Stool", price="15", category="chairs")
        make_product(name="Loose")

        assert lamps["slug"] == "lamps"
        assert [p["id"] for p in catalog.list_products(category="lamps")["items"]] == [lamp["id"]]
        assert [p["id"] for p in catalog.list_products(category="Lamps")["items"]] == [lamp["id"]]
        assert catalog.list_products(category="sofas")["total"] == 0
        assert catalog.list_products()["total"] == 3

    def test_featured_filter(self, catalog, make_product):
        star = catalog.create_product(name="Star", price="5", featured=True)
        make_product(name="Plain")

        assert [p["id"] for p in catalog.list_products(featured="true")["items"]] == [star["id"]]
        assert catalog.list_products(featured="false")["total"] == 2
        with pytest.raises(ValidationError):
            catalog.list_products(featured="maybe")

    def test_update_moves_product_between_categories(self, catalog, make_product):
        lamps = catalog.create_category(name="Lamps")
        product = make_product()

        updated = catalog.update_product(product["id"], category=lamps["id"], featured=True)
        assert (updated["category_id"], updated["featured"]) == (lamps["id"], True)

        cleared = catalog.update_product(product["id"], category=None)
        assert cleared["category_id"] is None

    def test_unknown_category_is_not_found(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.create_product(name="Orphan", price="1", category="nowhere")

    def test_duplicate_category_conflicts(self, catalog):
        catalog.create_category(name="Lamps")
        with pytest.raises(ConflictError):
            catalog.create_category(name="Lamps")

    def test_categories_listed_by_sort_order(self, catalog):
        catalog.create_category(name="B", sort_order=2)
        catalog.create_category(name="A", sort_order=1)
        assert [c["name"] for c in catalog.list_categories()] == ["A", "B"]
