import datetime as dt
import unittest

from vetboarding.boarding import urgency


def make_session(session_id, expected, *, check_in="2025-03-01T09:00:00", status="ACTIVE"):
    return {
        "id": session_id,
        "status": status,
        "check_in_date": check_in,
        "expected_check_out_date": expected,
    }


class UrgencyTestCase(unittest.TestCase):
    today = dt.date(2025, 3, 10)

    def test_band_thresholds(self) -> None:
        cases = {
            -4: urgency.RED,
            0: urgency.RED,
            1: urgency.RED,
            2: urgency.YELLOW,
            3: urgency.YELLOW,
            4: urgency.GREEN,
            30: urgency.GREEN,
            None: urgency.GREEN,
        }
        for days, band in cases.items():
            with self.subTest(days=days):
                self.assertEqual(urgency.band_for(days), band)

    def test_days_remaining_rounds_partial_days_up(self) -> None:
        self.assertEqual(urgency.days_remaining("2025-03-11", self.today), 1)
        self.assertEqual(urgency.days_remaining("2025-03-11T12:00:00", self.today), 2)
        self.assertEqual(urgency.days_remaining("2025-03-10T08:00:00", self.today), 1)
        self.assertEqual(urgency.days_remaining("2025-03-08", self.today), -2)
        self.assertEqual(urgency.days_remaining(dt.date(2025, 3, 10), self.today), 0)
        self.assertIsNone(urgency.days_remaining(None, self.today))
        self.assertIsNone(urgency.days_remaining("", self.today))

    def test_classify_uses_expected_checkout(self) -> None:
        self.assertEqual(urgency.classify(make_session(1, "2025-03-11"), self.today), urgency.RED)
        self.assertEqual(urgency.classify(make_session(2, "2025-03-13"), self.today), urgency.YELLOW)
        self.assertEqual(urgency.classify(make_session(3, "2025-03-14"), self.today), urgency.GREEN)
        self.assertEqual(urgency.classify(make_session(4, None), self.today), urgency.GREEN)

    def test_build_kanban_orders_each_column(self) -> None:
        sessions = [
            make_session(1, "2025-03-11", check_in="2025-03-05T09:00:00"),
            make_session(2, "2025-03-09"),
            make_session(3, "2025-03-11", check_in="2025-03-02T09:00:00"),
            make_session(4, None, check_in="2025-02-01T09:00:00"),
            make_session(5, "2025-04-01"),
            make_session(6, "2025-03-12"),
        ]
        board = urgency.build_kanban(sessions, self.today)
        self.assertEqual([s["id"] for s in board["red"]], [2, 3, 1])
        self.assertEqual([s["id"] for s in board["yellow"]], [6])
        self.assertEqual([s["id"] for s in board["green"]], [5, 4])
        self.assertEqual(board["counts"], {"green": 2, "yellow": 1, "red": 3, "total": 6})
        self.assertEqual(board["yellow"][0]["column"], "yellow")
        self.assertEqual(board["yellow"][0]["days_remaining"], 2)
        self.assertNotIn("column", sessions[5])

    def test_build_kanban_rejects_closed_sessions(self) -> None:
        with self.assertRaises(ValueError):
            urgency.build_kanban([make_session(1, "2025-03-11", status="COMPLETED")], self.today)

    def test_build_kanban_empty(self) -> None:
        board = urgency.build_kanban([], self.today)
        self.assertEqual(board["counts"]["total"], 0)
        self.assertEqual((board["green"], board["yellow"], board["red"]), ([], [], []))


if __name__ == "__main__":
    unittest.main()
