import unittest

from stagesheet.core.errors import ConfigurationError
from stagesheet.core.musician_setup import (
    resolve_default_musician_setup,
    resolve_effective_project_setup,
)
from stagesheet.core.presets import make_preset_lookup

_PRESETS = {
    "wedge": {"id": "wedge", "type": "monitor", "label": "Wedge"},
    "iem": {"id": "iem", "type": "monitor", "label": "IEM"},
    "iem_2": {"id": "iem_2", "type": "monitor", "label": "IEM 2"},
    "el_bass_xlr_amp": {
        "id": "el_bass_xlr_amp",
        "type": "preset",
        "group": "bass",
        "setupGroup": "electric_bass",
        "inputs": [{"key": "el_bass_xlr_amp", "label": "Bass XLR", "note": "amp"}],
    },
    "el_bass_xlr_pedalboard": {
        "id": "el_bass_xlr_pedalboard",
        "type": "preset",
        "group": "bass",
        "setupGroup": "electric_bass",
        "inputs": [{"key": "el_bass_xlr_pedalboard", "label": "Bass XLR", "note": "pedalboard"}],
    },
    "bass_synth": {
        "id": "bass_synth",
        "type": "preset",
        "group": "bass",
        "inputs": [{"key": "bass_synth", "label": "Bass synth"}],
    },
    "vocal_back": {
        "id": "vocal_back",
        "type": "preset",
        "inputs": [{"key": "voc_back", "label": "Back vocal – bass", "group": "vocs"}],
    },
    "vocal_lead": {
        "id": "vocal_lead",
        "type": "preset",
        "group": "vocs",
        "inputs": [{"key": "voc_lead", "label": "Lead vocal"}],
    },
    "no_group": {
        "id": "no_group",
        "type": "preset",
        "inputs": [{"key": "odd", "label": "Odd"}],
    },
}


def _ref(ref: str, kind: str = "preset") -> dict[str, str]:
    return {"kind": kind, "ref": ref}


class TestDefaultMusicianSetup(unittest.TestCase):
    def setUp(self) -> None:
        self.lookup = make_preset_lookup(_PRESETS)

    def test_setup_group_prefers_pedalboard_at_first_position(self) -> None:
        setup = resolve_default_musician_setup(
            "bass",
            [_ref("bass_synth"), _ref("el_bass_xlr_amp"), _ref("el_bass_xlr_pedalboard")],
            self.lookup,
        )
        self.assertEqual(
            [item["key"] for item in setup["inputs"]],
            ["el_bass_xlr_pedalboard", "bass_synth"],
        )
        self.assertEqual(setup["monitoring"], {"monitorRef": "wedge"})

    def test_legacy_bass_alias_resolves_to_amp(self) -> None:
        setup = resolve_default_musician_setup("bass", [_ref("el_bass_xlr")], self.lookup)
        self.assertEqual(setup["inputs"], [
            {"key": "el_bass_xlr_amp", "label": "Bass XLR", "note": "amp", "group": "bass"}
        ])

    def test_first_monitor_ref_wins(self) -> None:
        setup = resolve_default_musician_setup(
            "bass",
            [_ref("iem", "monitor"), _ref("bass_synth"), _ref("iem_2", "monitor")],
            self.lookup,
        )
        self.assertEqual(setup["monitoring"]["monitorRef"], "iem")

    def test_channel_group_falls_back_to_preset_then_role(self) -> None:
        setup = resolve_default_musician_setup(
            "bass", [_ref("vocal_back"), _ref("no_group"), _ref("bass_synth")], self.lookup
        )
        groups = {item["key"]: item["group"] for item in setup["inputs"]}
        self.assertEqual(groups, {"voc_back": "vocs", "odd": "bass", "bass_synth": "bass"})
        self.assertEqual(
            [item["key"] for item in setup["inputs"]],
            ["bass_synth", "odd", "voc_back"],
        )

    def test_defaults_fill_monitoring_and_empty_inputs(self) -> None:
        setup = resolve_default_musician_setup(
            "keys",
            [],
            self.lookup,
            musician_defaults={"inputs": [{"key": "keys", "label": "Keys", "group": "keys"}]},
            band_defaults={"monitoring": {"monitorRef": "iem"}},
        )
        self.assertEqual(setup["inputs"], [{"key": "keys", "label": "Keys", "group": "keys"}])
        self.assertEqual(setup["monitoring"], {"monitorRef": "iem"})

    def test_unknown_refs_fail(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            resolve_default_musician_setup(
                "bass", [_ref("ghost")], self.lookup, owner_label="musician 'tomas'"
            )
        self.assertIn("ghost", str(ctx.exception))
        self.assertIn("tomas", str(ctx.exception))
        with self.assertRaises(ConfigurationError):
            resolve_default_musician_setup("bass", [_ref("bass_synth", "mixer")], self.lookup)
        with self.assertRaises(ConfigurationError):
            resolve_default_musician_setup("bass", [_ref("wedge")], self.lookup)


    def test_slot_roles_split_presets_by_group(self) -> None:
        refs = [_ref("el_bass_xlr_amp"), _ref("vocal_lead"), _ref("no_group")]
        bass = resolve_default_musician_setup(
            "bass", refs, self.lookup, slot_roles=("bass", "vocs")
        )
        vocs = resolve_default_musician_setup(
            "vocs", refs, self.lookup, slot_roles=("bass", "vocs")
        )
        self.assertEqual([item["key"] for item in bass["inputs"]], ["el_bass_xlr_amp", "odd"])
        self.assertEqual([item["key"] for item in vocs["inputs"]], ["voc_lead"])

    def test_secondary_slot_skips_static_defaults(self) -> None:
        defaults = {"inputs": [{"key": "fallback", "label": "Fallback"}]}
        setup = resolve_default_musician_setup(
            "vocs",
            [_ref("el_bass_xlr_amp")],
            self.lookup,
            musician_defaults=defaults,
            slot_roles=("bass", "vocs"),
        )
        self.assertEqual(setup["inputs"], [])

class TestEffectiveProjectSetup(unittest.TestCase):
    def test_overrides_apply_on_top_of_defaults(self) -> None:
        musicians = {
            "tomas": {"id": "tomas", "presets": [_ref("el_bass_xlr_amp")]},
            "karel": {"id": "karel", "presets": [_ref("bass_synth"), _ref("iem", "monitor")]},
        }
        band = {"id": "b", "bandLeader": "tomas", "defaultLineup": {"bass": "tomas"}}
        project = {
            "id": "p",
            "lineup": {
                "bass": [
                    {
                        "musicianId": "tomas",
                        "presetOverride": {"inputs": {"add": [{"key": "el_bass_mic", "label": "Mic"}]}},
                    },
                    "karel",
                ]
            },
        }
        setup = resolve_effective_project_setup(
            project,
            band,
            "tomas",
            musicians.__getitem__,
            make_preset_lookup(_PRESETS),
        )
        self.assertEqual(setup.lineup["bass"], ("tomas", "karel"))
        self.assertEqual(
            [item["key"] for item in setup.by_musician_id["tomas"]["inputs"]],
            ["el_bass_xlr_amp", "el_bass_mic"],
        )
        self.assertEqual(
            [item["key"] for item in setup.default_by_musician_id["tomas"]["inputs"]],
            ["el_bass_xlr_amp"],
        )
        self.assertEqual(setup.by_musician_id["karel"]["monitoring"], {"monitorRef": "iem"})
        self.assertEqual(setup.talkback_owner_id, "tomas")
        self.assertIn("tomas", setup.preset_override_by_musician_id)

    def test_musician_in_two_groups_gets_one_preset_per_slot(self) -> None:
        musicians = {
            "tomas": {"id": "tomas", "presets": [_ref("el_bass_xlr_amp"), _ref("vocal_lead")]},
        }
        band = {"id": "b", "bandLeader": "tomas", "defaultLineup": {"bass": "tomas", "vocs": "tomas"}}
        project = {
            "id": "p",
            "lineup": {
                "bass": {
                    "musicianId": "tomas",
                    "presetOverride": {
                        "inputs": {
                            "add": [{"key": "el_bass_mic", "label": "Mic"}],
                            "update": [{"key": "voc_lead", "note": "own mic"}],
                        }
                    },
                },
            },
        }
        setup = resolve_effective_project_setup(
            project,
            band,
            "tomas",
            musicians.__getitem__,
            make_preset_lookup(_PRESETS),
        )
        self.assertEqual(
            [item["key"] for item in setup.by_slot[("bass", "tomas")]["inputs"]],
            ["el_bass_xlr_amp", "el_bass_mic"],
        )
        self.assertEqual(
            setup.by_slot[("vocs", "tomas")]["inputs"],
            [{"key": "voc_lead", "label": "Lead vocal", "group": "vocs", "note": "own mic"}],
        )
        self.assertIs(setup.by_musician_id["tomas"], setup.by_slot[("bass", "tomas")])


if __name__ == "__main__":
    unittest.main()
