import unittest

from stagesheet.core.band_leader import (
    band_leader_error_message,
    is_band_leader,
    resolve_band_leader_id,
    validate_band_leader,
)
from stagesheet.core.errors import ConfigurationError
from stagesheet.core.groups import GROUP_ORDER, group_rank, is_group, lineup_value_for_group


class TestGroups(unittest.TestCase):
    def test_group_order_is_fixed(self) -> None:
        self.assertEqual(GROUP_ORDER, ("drums", "bass", "guitar", "keys", "vocs", "talkback"))

    def test_unknown_group_ranks_last(self) -> None:
        self.assertFalse(is_group("horns"))
        self.assertFalse(is_group(None))
        self.assertEqual(group_rank("horns"), len(GROUP_ORDER))
        self.assertEqual(group_rank(None), len(GROUP_ORDER))
        self.assertLess(group_rank("talkback"), group_rank("horns"))

    def test_lead_vocs_alias_resolves_to_vocs(self) -> None:
        lineup = {"lead_vocs": ["lucie"], "vocs": ["ignored"]}
        self.assertEqual(lineup_value_for_group(lineup, "vocs"), ["lucie"])
        self.assertEqual(lineup_value_for_group({"lead_voc": "eva"}, "vocs"), "eva")
        self.assertEqual(lineup_value_for_group({"vocs": "jan"}, "vocs"), "jan")
        self.assertIsNone(lineup_value_for_group({}, "drums"))


class TestBandLeader(unittest.TestCase):
    def test_resolve_requires_non_empty_string(self) -> None:
        self.assertEqual(resolve_band_leader_id({"id": "b", "bandLeader": " jan "}), "jan")
        for value in ("", "   ", None, 7):
            with self.subTest(value=value):
                with self.assertRaises(ConfigurationError) as ctx:
                    resolve_band_leader_id({"id": "b", "bandLeader": value})
                self.assertEqual(str(ctx.exception), band_leader_error_message("b"))

    def test_is_band_leader_matches_exactly_the_leader(self) -> None:
        band = {"id": "b", "bandLeader": "jan"}
        self.assertTrue(is_band_leader(band, "jan"))
        self.assertFalse(is_band_leader(band, "eva"))

    def test_validate_band_leader_requires_known_musician(self) -> None:
        musicians = {"jan": {"id": "jan"}}

        def get_musician(musician_id: str) -> dict:
            if musician_id not in musicians:
                raise ConfigurationError(f"Musician not found: {musician_id}")
            return musicians[musician_id]

        self.assertEqual(validate_band_leader({"id": "b", "bandLeader": "jan"}, get_musician), "jan")
        with self.assertRaises(ConfigurationError) as ctx:
            validate_band_leader({"id": "b", "bandLeader": "ghost"}, get_musician)
        self.assertIn("Band 'b' must define bandLeader", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
