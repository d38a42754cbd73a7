import unittest

from carslots.cache import RelationalCache
from carslots.config import Settings
from carslots.index import CarEntry, Link
from carslots.models import Slot, SlotStats
from carslots.paths import SlotType

VIN = "XTA21099012345678"


def _car(vin: str = VIN, region: str = "R1") -> CarEntry:
    return CarEntry(region=region, make="Lada", model="Niva", vin=vin, disk_root_path=f"/Фото/{region}/Lada Niva {vin}")


class TestRelationalCache(unittest.TestCase):
    def setUp(self) -> None:
        self.cache = RelationalCache("sqlite://")

    def tearDown(self) -> None:
        self.cache.dispose()

    def test_from_settings_without_url(self) -> None:
        self.assertIsNone(RelationalCache.from_settings(Settings()))

    def test_region_never_synced(self) -> None:
        self.assertIsNone(self.cache.region_cars("R1"))
        self.assertIsNone(self.cache.region_synced_at("R1"))

    def test_sync_region_replaces_cars(self) -> None:
        self.cache.sync_region("r1", [_car(), _car("WBA12345678901234")])
        self.cache.sync_region("R1", [_car()])

        cars = self.cache.region_cars("R1")
        self.assertEqual([c.vin for c in cars], [VIN])
        self.assertEqual(cars[0].make, "Lada")
        self.assertIsNotNone(self.cache.region_synced_at("R1"))

    def test_synced_empty_region(self) -> None:
        self.cache.sync_region("R2", [])
        self.assertEqual(self.cache.region_cars("R2"), [])

    def test_slots_upsert(self) -> None:
        slot = Slot(SlotType.BUYOUT, 2, "/p/2", stats=SlotStats(count=1, cover="a.jpg"))
        self.cache.sync_slots("R1", VIN, [slot, Slot(SlotType.DEALER, 1, "/p/d")])
        slot.stats = SlotStats(count=4, cover="b.jpg", used=True)
        self.cache.sync_slots("R1", VIN, [slot])

        cached = self.cache.car_slots("R1", VIN)
        self.assertEqual(len(cached), 1)
        self.assertEqual(cached[0].slot_type, SlotType.BUYOUT)
        self.assertEqual(cached[0].stats.count, 4)
        self.assertTrue(cached[0].stats.locked)
        self.assertTrue(cached[0].stats.used)

    def test_links_and_remove_car(self) -> None:
        self.cache.sync_region("R1", [_car()])
        link = Link(id="l1", title="Ad", url="https://example.com", created_at="2025-01-01T00:00:00.000Z")
        self.cache.sync_links("R1", VIN, [link])
        self.assertEqual([l.id for l in self.cache.car_links("R1", VIN)], ["l1"])

        self.cache.remove_car("R1", VIN)
        self.assertEqual(self.cache.region_cars("R1"), [])
        self.assertEqual(self.cache.car_links("R1", VIN), [])

    def test_clear(self) -> None:
        self.cache.sync_region("R1", [_car()])
        self.cache.clear()
        self.assertIsNone(self.cache.region_cars("R1"))


if __name__ == "__main__":
    unittest.main()
