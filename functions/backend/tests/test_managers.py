import io
import unittest
from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import MagicMock

import requests
from PIL import Image

from backend.auth import AuthUser, FirebaseAuthClient, InMemoryAuthClient
from backend.auth_manager import AuthManager
from backend.bag_manager import BagForm, CoffeeBagManager
from backend.brew_manager import BrewForm, CoffeeBrewManager
from backend.images import ImageEncodingError
from backend.messaging import InMemoryPushSender
from backend.notification_manager import NotificationManager
from backend.storage import InMemoryStorageClient
from backend.store import InMemoryDocumentStore
from backend.user_manager import UserManager
from shared.types import (
    BrewMethod,
    CoffeeBag,
    CoffeeBrew,
    GrindSize,
    RoastLevel,
    UserProfile,
)


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (4, 4), (120, 80, 40, 128)).save(buffer, format="PNG")
    return buffer.getvalue()


def _form(**overrides) -> BrewForm:
    values = dict(
        title="Morning V60",
        method=BrewMethod.POUR_OVER,
        coffee_grams=18,
        water_grams=300,
        brew_time_seconds=180,
        grind_size=GrindSize.MEDIUM,
        notes="Bright",
    )
    values.update(overrides)
    return BrewForm(**values)


def _at(day: int) -> datetime:
    return datetime(2025, 1, day, 8, tzinfo=timezone.utc)


class AuthManagerTests(unittest.TestCase):
    def setUp(self):
        self.client = InMemoryAuthClient()
        self.manager = AuthManager(self.client)

    def test_sign_up_then_sign_in(self):
        self.assertTrue(self.manager.sign_up("ada@example.com", "secret1"))
        uid = self.manager.current_uid
        self.manager.sign_out()
        self.assertIsNone(self.manager.user)

        self.assertTrue(self.manager.sign_in("ada@example.com", "secret1"))
        self.assertEqual(self.manager.current_uid, uid)
        self.assertIsNone(self.manager.error_message)
        self.assertFalse(self.manager.is_loading)

    def test_failures_set_error_message(self):
        self.assertFalse(self.manager.sign_up("ada@example.com", "123"))
        self.assertEqual(
            self.manager.error_message, "The password must be 6 characters long or more."
        )
        self.assertFalse(self.manager.sign_in("nobody@example.com", "secret1"))
        self.assertIn("no user record", self.manager.error_message)
        self.assertIsNone(self.manager.user)

    def test_network_failure_sets_error_message(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("offline")
        manager = AuthManager(FirebaseAuthClient("web-key", session=session))

        self.assertFalse(manager.sign_in("ada@example.com", "secret1"))

        self.assertIn("Could not reach", manager.error_message)
        self.assertIsNone(manager.user)
        self.assertFalse(manager.is_loading)

    def test_state_listener_follows_user(self):
        seen = []
        subscription = self.manager.add_state_listener(seen.append)
        self.manager.sign_up("ada@example.com", "secret1")
        self.manager.sign_out()
        subscription.remove()
        self.manager.sign_in("ada@example.com", "secret1")

        self.assertEqual(len(seen), 3)
        self.assertIsNone(seen[0])
        self.assertEqual(seen[1].email, "ada@example.com")
        self.assertIsNone(seen[2])


class CoffeeBrewManagerTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.storage = InMemoryStorageClient()
        self.manager = CoffeeBrewManager(self.store, self.storage)
        self.store.set("users", "u1", {"email": "ada@example.com", "displayName": "Ada"})
        self.user = AuthUser(uid="u1", email="ada@example.com", display_name="Ada")

    def _add(self, creator_id="u1", day=20, **overrides):
        brew = _form(**overrides).to_brew(creator_id=creator_id, creator_name="")
        brew.created_at = _at(day)
        return self.manager.add_brew(brew)

    def test_form_values_are_formatted(self):
        brew = _form(coffee_grams=15.5, water_grams=250.7).to_brew("u1", "Ada")

        self.assertEqual(brew.method, "Pourover")
        self.assertEqual(brew.coffee_amount, "15.5g")
        self.assertEqual(brew.water_amount, "250g")
        self.assertEqual(brew.brew_time, "180s")
        self.assertEqual(brew.grind_size, "Medium")
        self.assertEqual(brew.save_count, 0)

    def test_form_round_trips_through_stored_brew(self):
        brew = _form(coffee_grams=15.5, brew_time_seconds=95).to_brew("u1", "Ada")

        form = BrewForm.from_brew(brew)

        self.assertEqual(form.method, BrewMethod.POUR_OVER)
        self.assertEqual(form.grind_size, GrindSize.MEDIUM)
        self.assertEqual(form.coffee_grams, 15.5)
        self.assertEqual(form.water_grams, 300.0)
        self.assertEqual(form.brew_time_seconds, 95)

    def test_form_defaults_for_unreadable_values(self):
        brew = CoffeeBrew(
            title="Old",
            method="Siphon",
            coffee_amount="",
            water_amount="lots",
            brew_time="",
            grind_size="",
            creator_id="u1",
        )

        form = BrewForm.from_brew(brew)

        self.assertEqual(form.method, BrewMethod.ESPRESSO)
        self.assertEqual(form.grind_size, GrindSize.FINE)
        self.assertEqual((form.coffee_grams, form.water_grams), (18.0, 30.0))
        self.assertEqual(form.brew_time_seconds, 30)

    def test_fetch_brews_newest_first_with_creator_names(self):
        older = self._add(day=20)
        newer = self._add(creator_id="ghost", day=21)

        self.manager.fetch_brews()

        self.assertEqual([b.id for b in self.manager.coffee_brews], [newer, older])
        self.assertEqual(self.manager.coffee_brews[0].creator_name, "Unknown")
        self.assertEqual(self.manager.coffee_brews[1].creator_name, "Ada")

    def test_fetch_user_brews(self):
        mine = self._add(day=20)
        self._add(creator_id="someone-else", day=21)

        self.manager.fetch_user_brews("u1")

        self.assertEqual([b.id for b in self.manager.user_brews], [mine])

    def test_fetch_failure_keeps_previous_state(self):
        self._add()
        self.manager.fetch_brews()
        before = list(self.manager.coffee_brews)
        failing = MagicMock(wraps=self.store)
        failing.query.side_effect = RuntimeError("unavailable")
        self.manager._store = failing

        self.manager.fetch_brews()

        self.assertEqual(self.manager.coffee_brews, before)

    def test_fetch_favorite_brews_in_chunks(self):
        ids = [self._add(day=1 + i % 28) for i in range(12)]
        spy = MagicMock(wraps=self.store)
        self.manager._store = spy

        favorites = self.manager.fetch_favorite_brews(ids + ["deleted"])

        self.assertEqual(len(favorites), 12)
        self.assertEqual(spy.get_many.call_count, 2)
        self.assertEqual(self.manager.fetch_favorite_brews([]), [])

    def test_update_save_count_mirrors_local_lists(self):
        brew_id = self._add()
        self.manager.fetch_brews()
        self.manager.fetch_user_brews("u1")

        self.manager.update_save_count(self.manager.coffee_brews[0], 1)

        self.assertEqual(self.store.get("coffeeBrews", brew_id)["saveCount"], 1)
        self.assertEqual(self.manager.coffee_brews[0].save_count, 1)
        self.assertEqual(self.manager.user_brews[0].save_count, 1)

    def test_update_brew_does_not_overwrite_save_count(self):
        brew_id = self._add()
        brew = self.manager.get_brew(brew_id)
        self.store.increment("coffeeBrews", brew_id, "saveCount", 5)

        self.manager.update_brew(_form(title="Evening V60").apply_to(brew))

        stored = self.store.get("coffeeBrews", brew_id)
        self.assertEqual(stored["title"], "Evening V60")
        self.assertEqual(stored["saveCount"], 5)

    def test_delete_brew(self):
        brew_id = self._add()
        self.manager.fetch_brews()

        self.manager.delete_brew(self.manager.coffee_brews[0])

        self.assertIsNone(self.store.get("coffeeBrews", brew_id))
        self.assertEqual(self.manager.coffee_brews, [])

    def test_create_brew_with_bag_and_image(self):
        bags = CoffeeBagManager(self.store)
        bag = BagForm("Intelligentsia", RoastLevel.LIGHT, "Ethiopia", "Chicago").to_bag(
            "u1", "Ada"
        )

        brew_id = self.manager.create_brew(
            self.user, _form(), image_bytes=_png_bytes(), bag=bag, bag_manager=bags
        )

        stored = self.store.get("coffeeBrews", brew_id)
        self.assertEqual(stored["creatorName"], "Ada")
        self.assertIsNotNone(self.store.get("coffeeBags", stored["bagId"]))
        self.assertEqual(len(self.storage.stored_objects), 1)
        path, (data, content_type) = next(iter(self.storage.stored_objects.items()))
        self.assertTrue(path.startswith("users/u1/brews/"))
        self.assertTrue(path.endswith(".jpg"))
        self.assertEqual(content_type, "image/jpeg")
        self.assertEqual(data[:2], b"\xff\xd8")
        self.assertEqual(stored["imageURL"], f"{self.storage.base_url}/{path}")

    def test_create_brew_rejects_unreadable_image(self):
        with self.assertRaises(ImageEncodingError):
            self.manager.create_brew(self.user, _form(), image_bytes=b"not an image")
        self.assertEqual(self.store.query("coffeeBrews"), [])

    def test_listener_replaces_brews(self):
        changes = []
        self.manager.observe(lambda name, value: changes.append(name))
        self.manager.start_listening()
        self._add(day=20)
        self._add(day=21)

        self.assertEqual(len(self.manager.coffee_brews), 2)
        self.assertEqual(changes.count("coffee_brews"), 3)

        self.manager.stop_listening()
        self._add(day=22)
        self.assertEqual(len(self.manager.coffee_brews), 2)


class CoffeeBagManagerTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.manager = CoffeeBagManager(self.store)

    def _bag(self, brand, day, user_id="u1"):
        bag = BagForm(brand, RoastLevel.DARK, "Brazil").to_bag(user_id, "Ada")
        bag.created_at = _at(day)
        return bag

    def test_listener_orders_newest_first_and_skips_malformed(self):
        self.manager.start_listening()
        self.manager.add_bag(self._bag("Onyx", 20))
        self.manager.add_bag(self._bag("Sey", 21))
        self.store.add("coffeeBags", {"dateAdded": _at(22)})

        self.assertEqual([b.brand_name for b in self.manager.bags], ["Sey", "Onyx"])
        self.assertEqual(self.manager.bags[0].roast_level, "Dark")
        self.manager.stop_listening()

    def test_update_and_delete(self):
        bag_id = self.manager.add_bag(self._bag("Onyx", 20))
        bag = self.manager.get_bag(bag_id)
        bag.location = "Rogers"

        self.manager.update_bag(bag)
        self.assertEqual(self.store.get("coffeeBags", bag_id)["location"], "Rogers")

        self.manager.delete_bag(bag)
        self.assertIsNone(self.store.get("coffeeBags", bag_id))

    def test_operations_without_id_are_noops(self):
        spy = MagicMock(wraps=self.store)
        self.manager._store = spy
        bag = CoffeeBag(brand_name="x", roast_level="Light", origin="y")

        self.manager.update_bag(bag)
        self.manager.delete_bag(bag)

        spy.set.assert_not_called()
        spy.delete.assert_not_called()

    def test_fetch_for_one_user(self):
        self.manager.add_bag(self._bag("Mine", 20))
        self.manager.add_bag(self._bag("Theirs", 21, user_id="u2"))

        self.manager.fetch_coffee_bags(user_id="u1")

        self.assertEqual([b.brand_name for b in self.manager.bags], ["Mine"])


class UserManagerTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.storage = InMemoryStorageClient()
        self.auth = AuthManager(InMemoryAuthClient(), user=AuthUser(uid="u1"))
        self.manager = UserManager(self.store, self.auth, self.storage)
        self.brews = CoffeeBrewManager(self.store)
        brew = _form().to_brew("u2", "Bo")
        self.brew_id = self.brews.add_brew(brew)
        self.brew = self.brews.get_brew(self.brew_id)

    def test_create_profile_and_onboarding(self):
        self.assertTrue(self.manager.needs_onboarding())

        self.manager.create_or_update_user(
            UserProfile(email="ada@example.com", display_name="Ada")
        )

        self.assertFalse(self.manager.needs_onboarding())
        profile = self.manager.current_user_profile
        self.assertEqual(profile.display_name, "Ada")
        self.assertIsNotNone(profile.updated_at)

    def test_no_user_means_no_writes(self):
        self.auth.sign_out()
        self.manager.create_or_update_user(UserProfile(email="x@example.com"))

        self.assertEqual(self.store.query("users"), [])
        self.assertIsNone(self.manager.toggle_favorite(self.brew))

    def test_favorite_brew_updates_list_and_count(self):
        self.manager.create_or_update_user(UserProfile(email="ada@example.com"))

        self.assertTrue(self.manager.favorite_brew(self.brew, self.brews))
        self.assertTrue(self.manager.is_favorite(self.brew))
        self.assertEqual(self.store.get("users", "u1")["favorites"], [self.brew_id])
        self.assertEqual(self.store.get("coffeeBrews", self.brew_id)["saveCount"], 1)

        self.assertFalse(self.manager.favorite_brew(self.brew, self.brews))
        self.assertEqual(self.store.get("users", "u1")["favorites"], [])
        self.assertEqual(self.store.get("coffeeBrews", self.brew_id)["saveCount"], 0)

    def test_push_token_and_soft_delete(self):
        self.manager.create_or_update_user(UserProfile(email="ada@example.com"))

        self.manager.update_push_token("device-token")
        self.manager.delete_user()

        stored = self.store.get("users", "u1")
        self.assertEqual(stored["fcmToken"], "device-token")
        self.assertTrue(stored["isDeleted"])
        self.assertTrue(self.manager.current_user_profile.is_deleted)

    def test_stale_profile_does_not_undo_other_writes(self):
        self.manager.create_or_update_user(UserProfile(email="ada@example.com"))
        self.manager.update_push_token("old-device")
        other_device = UserManager(self.store, self.auth, self.storage)
        other_device.fetch_user_profile()
        other_device.update_push_token("new-device")
        NotificationManager(self.store, auth_manager=self.auth).schedule_daily_coffee_reminder()
        other_device.delete_user()

        self.manager.toggle_favorite(self.brew)
        self.manager.create_or_update_user(
            replace(self.manager.current_user_profile, bio="stale edit")
        )

        stored = self.store.get("users", "u1")
        self.assertEqual(stored["favorites"], [self.brew_id])
        self.assertEqual(stored["bio"], "stale edit")
        self.assertEqual(stored["fcmToken"], "new-device")
        self.assertTrue(stored["isDeleted"])
        self.assertEqual(stored["reminder"], {"hour": 8, "minute": 0})

    def test_profile_listener(self):
        self.manager.start_listening_for_profile()
        self.store.set("users", "u1", {"email": "ada@example.com", "bio": "espresso"})

        self.assertEqual(self.manager.current_user_profile.bio, "espresso")
        self.manager.stop_listening_for_profile()
        self.store.set("users", "u1", {"email": "ada@example.com", "bio": "filter"})
        self.assertEqual(self.manager.current_user_profile.bio, "espresso")

    def test_stock_profile_pictures(self):
        self.storage.upload_bytes("stock_profile_pictures/bean.png", b"x", "image/png")
        self.storage.upload_bytes("users/u1/brews/a.jpg", b"y", "image/jpeg")

        self.assertEqual(
            self.manager.fetch_stock_profile_picture_urls(),
            [f"{self.storage.base_url}/stock_profile_pictures/bean.png"],
        )


class NotificationManagerTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.sender = InMemoryPushSender()
        self.auth = AuthManager(InMemoryAuthClient(), user=AuthUser(uid="u1"))
        self.manager = NotificationManager(self.store, self.sender, self.auth)
        self.store.set("users", "u1", {"email": "ada@example.com", "fcmToken": "t1"})

    def test_schedule_and_cancel(self):
        reminder = self.manager.schedule_daily_coffee_reminder()

        self.assertEqual((reminder.hour, reminder.minute), (8, 0))
        self.assertTrue(self.manager.is_reminder_scheduled())

        self.manager.cancel_daily_coffee_reminder()
        self.assertFalse(self.manager.is_reminder_scheduled())

    def test_schedule_rejects_invalid_time(self):
        with self.assertRaises(ValueError):
            self.manager.schedule_daily_coffee_reminder(hour=24)
        with self.assertRaises(ValueError):
            self.manager.schedule_daily_coffee_reminder(minute=60)

    def test_send_due_reminders(self):
        self.manager.schedule_daily_coffee_reminder(hour=7)
        self.store.set("users", "u2", {"reminder": {"hour": 7, "minute": 0}})
        self.store.set(
            "users",
            "u3",
            {"reminder": {"hour": 7, "minute": 0}, "fcmToken": "t3", "isDeleted": True},
        )
        self.store.set("users", "u4", {"reminder": {"hour": 9, "minute": 0}, "fcmToken": "t4"})

        sent = self.manager.send_due_reminders(datetime(2025, 2, 1, 7, tzinfo=timezone.utc))

        self.assertEqual(sent, 1)
        self.assertEqual([n.token for n in self.sender.sent], ["t1"])
        self.assertEqual(self.sender.sent[0].title, "Time to Log Your Coffee")

    def test_reminder_minute_selects_the_window(self):
        self.store.set("users", "u1", {"reminder": {"hour": 8, "minute": 45}, "fcmToken": "t1"})
        self.store.set("users", "u2", {"reminder": {"hour": 8, "minute": 5}, "fcmToken": "t2"})

        self.assertEqual(
            self.manager.send_due_reminders(datetime(2025, 2, 1, 8, 0, tzinfo=timezone.utc)), 1
        )
        self.assertEqual([n.token for n in self.sender.sent], ["t2"])

        self.assertEqual(
            self.manager.send_due_reminders(datetime(2025, 2, 1, 8, 45, tzinfo=timezone.utc)), 1
        )
        self.assertEqual([n.token for n in self.sender.sent], ["t2", "t1"])

    def test_send_failure_does_not_stop_others(self):
        self.store.set("users", "u1", {"reminder": {"hour": 7}, "fcmToken": "bad"})
        self.store.set("users", "u2", {"reminder": {"hour": 7}, "fcmToken": "good"})
        sender = MagicMock()
        sender.send.side_effect = [Exception("unregistered"), "ok"]
        manager = NotificationManager(self.store, sender)

        sent = manager.send_due_reminders(datetime(2025, 2, 1, 7, tzinfo=timezone.utc))

        self.assertEqual(sent, 1)
        self.assertEqual(sender.send.call_count, 2)


if __name__ == "__main__":
    unittest.main()
