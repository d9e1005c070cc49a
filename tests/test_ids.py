import unittest

from workload.ids import extract_number, next_id, next_secondary_id


class TestExtractNumber(unittest.TestCase):
    def test_first_digit_run(self) -> None:
        self.assertEqual(extract_number("COURSE012"), 12)
        self.assertEqual(extract_number("T4b7"), 4)

    def test_no_digits_counts_as_zero(self) -> None:
        self.assertEqual(extract_number("STAFF"), 0)
        self.assertEqual(extract_number(None), 0)
        self.assertEqual(extract_number(17), 0)


class TestNextId(unittest.TestCase):
    def test_empty_collection_starts_at_one(self) -> None:
        self.assertEqual(next_id([]), 1)

    def test_max_plus_one_ignores_gaps(self) -> None:
        self.assertEqual(next_id([1, 3, 5]), 6)
        self.assertEqual(next_id([5, 1]), 6)


class TestNextSecondaryId(unittest.TestCase):
    def test_increments_highest_number(self) -> None:
        self.assertEqual(next_secondary_id(["COURSE001", "COURSE012", "COURSE003"], "COURSE"), "COURSE013")

    def test_empty_namespace(self) -> None:
        self.assertEqual(next_secondary_id([], "STAFF"), "STAFF001")

    def test_non_matching_ids_are_ignored(self) -> None:
        self.assertEqual(next_secondary_id(["misc", None, "T002"], "T"), "T003")

    def test_grows_past_width(self) -> None:
        self.assertEqual(next_secondary_id(["T999"], "T"), "T1000")


if __name__ == "__main__":
    unittest.main()
