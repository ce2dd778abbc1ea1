import os
import tempfile
import threading
import unittest

from vetboarding.boarding.system import BoardingError, BoardingSystem, CapacityError, ConflictError


class ConcurrentCheckInTestCase(unittest.TestCase):
    """Two staff members racing for the last slot from separate connections."""

    def setUp(self) -> None:
        handle, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(handle)
        system = BoardingSystem(self.db_path)
        owner = system.register_owner(first_name="Omar", last_name="Saleh")
        self.pets = [
            system.add_pet(owner_id=owner["id"], name=name, species="CAT")
            for name in ("Simba", "Nala")
        ]
        self.config = system.create_configuration(
            name_en="Isolation", name_ar="العزل", type="ICU", species="CAT", total_slots=1
        )
        system.close()

    def tearDown(self) -> None:
        for suffix in ("", "-wal", "-shm"):
            if os.path.exists(self.db_path + suffix):
                os.remove(self.db_path + suffix)

    def _race(self, **check_in_kwargs) -> tuple[list[dict], list[BoardingError]]:
        barrier = threading.Barrier(len(self.pets))
        successes: list[dict] = []
        failures: list[BoardingError] = []
        lock = threading.Lock()

        def worker(pet: dict) -> None:
            system = BoardingSystem(self.db_path, initialize=False)
            try:
                barrier.wait()
                session = system.check_in(
                    config_id=self.config["id"],
                    pet_id=pet["id"],
                    check_in_date="2025-03-10T09:00:00",
                    expected_check_out_date="2025-03-12",
                    **check_in_kwargs,
                )
                with lock:
                    successes.append(session)
            except BoardingError as exc:
                with lock:
                    failures.append(exc)
            finally:
                system.close()

        threads = [threading.Thread(target=worker, args=(pet,)) for pet in self.pets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return successes, failures

    def test_only_one_auto_assigned_check_in_wins(self) -> None:
        successes, failures = self._race()
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], (CapacityError, ConflictError))
        self.assertEqual(successes[0]["slot_number"], 1)

        system = BoardingSystem(self.db_path, initialize=False)
        try:
            self.assertEqual(system.get_occupancy(self.config["id"])["occupied"], 1)
        finally:
            system.close()

    def test_only_one_explicit_slot_claim_wins(self) -> None:
        successes, failures = self._race(slot_number=1)
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], (CapacityError, ConflictError))


if __name__ == "__main__":
    unittest.main()
