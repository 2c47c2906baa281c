import unittest
from unittest import mock

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from cart import CartService
from errors import BadRequestError, NotFoundError
from tests.helpers import add_product, add_user, make_db


class CartServiceTestCase(unittest.TestCase):
    def setUp(self):
        self.db = make_db()
        self.service = CartService(self.db)
        self.user_id = add_user(self.db)
        self.lamp = add_product(self.db, name="Desk Lamp", price=29.99)
        self.chair = add_product(self.db, name="Office Chair", price=39.99, category="Furniture")

    # ---------- get_cart ----------

    def test_get_cart_creates_empty_cart_once(self):
        cart = self.service.get_cart(self.user_id)
        self.assertEqual(cart["items"], [])
        self.assertEqual(cart["total_items"], 0)
        self.assertEqual(cart["total_price"], 0)
        self.assertEqual(cart["user_id"], self.user_id)

        again = self.service.get_cart(self.user_id)
        self.assertEqual(again["id"], cart["id"])
        self.assertEqual(self.db["cart"].count_documents({}), 1)

    # ---------- add_to_cart ----------

    def test_repeated_adds_merge_into_one_line(self):
        cart = self.service.add_to_cart(self.user_id, self.lamp, 2)
        self.assertEqual(cart["total_items"], 2)
        self.assertEqual(cart["total_price"], 59.98)

        cart = self.service.add_to_cart(self.user_id, self.lamp, 1)
        self.assertEqual(len(cart["items"]), 1)
        self.assertEqual(cart["items"][0]["quantity"], 3)
        self.assertEqual(cart["total_items"], 3)
        self.assertEqual(cart["total_price"], 89.97)
        self.assertEqual(self.db["cart_item"].count_documents({}), 1)

    def test_add_after_losing_insert_race_increments_existing_line(self):
        self.service.add_to_cart(self.user_id, self.lamp, 2)
        with mock.patch.object(
            self.service.items, "find_one_and_update", side_effect=DuplicateKeyError("duplicate key")
        ):
            cart = self.service.add_to_cart(self.user_id, self.lamp, 3)
        self.assertEqual(len(cart["items"]), 1)
        self.assertEqual(cart["items"][0]["quantity"], 5)
        self.assertEqual(self.db["cart_item"].count_documents({}), 1)

    def test_items_carry_product_details(self):
        cart = self.service.add_to_cart(self.user_id, self.chair)
        item = cart["items"][0]
        self.assertEqual(item["quantity"], 1)
        self.assertEqual(item["product_id"], self.chair)
        self.assertEqual(item["product"]["name"], "Office Chair")

    def test_total_price_follows_live_product_price(self):
        self.service.add_to_cart(self.user_id, self.lamp, 2)
        self.service.add_to_cart(self.user_id, self.chair, 1)
        self.assertEqual(self.service.get_cart(self.user_id)["total_price"], 99.97)

        self.db["product"].update_one({"_id": ObjectId(self.lamp)}, {"$set": {"price": 10.0}})
        self.assertEqual(self.service.get_cart(self.user_id)["total_price"], 59.99)

    def test_deleted_product_counts_items_but_not_price(self):
        self.service.add_to_cart(self.user_id, self.lamp, 2)
        self.service.add_to_cart(self.user_id, self.chair, 1)
        self.db["product"].delete_one({"_id": ObjectId(self.chair)})

        cart = self.service.get_cart(self.user_id)
        self.assertEqual(cart["total_items"], 3)
        self.assertEqual(cart["total_price"], 59.98)
        missing = [it for it in cart["items"] if it["product"] is None]
        self.assertEqual(len(missing), 1)

    def test_add_rejects_non_positive_quantity(self):
        with self.assertRaises(BadRequestError):
            self.service.add_to_cart(self.user_id, self.lamp, 0)
        with self.assertRaises(BadRequestError):
            self.service.add_to_cart(self.user_id, self.lamp, -2)

    def test_add_unknown_product(self):
        with self.assertRaises(NotFoundError):
            self.service.add_to_cart(self.user_id, "0123456789ab0123456789ab", 1)
        with self.assertRaises(NotFoundError):
            self.service.add_to_cart(self.user_id, "not-an-id", 1)

    def test_carts_are_per_user(self):
        other = add_user(self.db, email="other@example.com")
        self.service.add_to_cart(self.user_id, self.lamp, 2)
        self.service.add_to_cart(other, self.lamp, 5)
        self.assertEqual(self.service.get_cart(self.user_id)["total_items"], 2)
        self.assertEqual(self.service.get_cart(other)["total_items"], 5)

    # ---------- update_cart_item ----------

    def test_update_sets_quantity(self):
        cart = self.service.add_to_cart(self.user_id, self.lamp, 2)
        item_id = cart["items"][0]["id"]
        cart = self.service.update_cart_item(self.user_id, item_id, 5)
        self.assertEqual(cart["items"][0]["quantity"], 5)
        self.assertEqual(cart["total_items"], 5)

    def test_update_to_zero_removes_item(self):
        self.service.add_to_cart(self.user_id, self.lamp, 2)
        cart = self.service.add_to_cart(self.user_id, self.chair, 3)
        before = cart["total_items"]
        chair_item = next(it for it in cart["items"] if it["product_id"] == self.chair)

        cart = self.service.update_cart_item(self.user_id, chair_item["id"], 0)
        self.assertEqual(len(cart["items"]), 1)
        self.assertEqual(cart["total_items"], before - 3)

    def test_update_without_cart_or_item_returns_none(self):
        self.assertIsNone(self.service.update_cart_item(self.user_id, "0123456789ab0123456789ab", 1))
        self.service.get_cart(self.user_id)
        self.assertIsNone(self.service.update_cart_item(self.user_id, "0123456789ab0123456789ab", 1))

    def test_cannot_touch_another_users_item(self):
        other = add_user(self.db, email="other@example.com")
        cart = self.service.add_to_cart(other, self.lamp, 1)
        item_id = cart["items"][0]["id"]
        self.service.get_cart(self.user_id)

        self.assertIsNone(self.service.update_cart_item(self.user_id, item_id, 9))
        self.assertIsNone(self.service.remove_from_cart(self.user_id, item_id))
        self.assertEqual(self.service.get_cart(other)["total_items"], 1)

    # ---------- remove_from_cart / clear_cart ----------

    def test_remove_item(self):
        cart = self.service.add_to_cart(self.user_id, self.lamp, 2)
        cart = self.service.remove_from_cart(self.user_id, cart["items"][0]["id"])
        self.assertEqual(cart["items"], [])
        self.assertEqual(cart["total_items"], 0)

    def test_remove_without_cart_returns_none(self):
        self.assertIsNone(self.service.remove_from_cart(self.user_id, "0123456789ab0123456789ab"))

    def test_clear_cart(self):
        self.assertIsNone(self.service.clear_cart(self.user_id))

        self.service.add_to_cart(self.user_id, self.lamp, 2)
        self.service.add_to_cart(self.user_id, self.chair, 1)
        cart = self.service.clear_cart(self.user_id)
        self.assertEqual(cart["items"], [])
        self.assertEqual(cart["total_price"], 0)
        self.assertEqual(self.db["cart_item"].count_documents({}), 0)


if __name__ == "__main__":
    unittest.main()
