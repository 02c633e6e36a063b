from musical_eras.core.models import Era
from views.eras import era_sizes_chart, eras_frame


def _eras():
    return [
        Era("2021 - 2021", "The Pop Era", ["X"], ["pop"],
            {"energy": 0.5, "valence": 0.4, "danceability": 0.6}, [f"t{i}" for i in range(20)]),
        Era("2021 - 2022", "The Rock Era", ["Y"], ["rock"],
            {"energy": 0.9, "valence": 0.2, "danceability": 0.3}, [f"u{i}" for i in range(12)]),
    ]


def test_eras_frame_has_one_row_per_era_feature():
    df = eras_frame(_eras())
    assert len(df) == 6
    assert list(df["era"].unique()) == ["1. The Pop Era", "2. The Rock Era"]


def test_era_sizes_chart_uses_primary_color_and_era_order():
    spec = era_sizes_chart(_eras(), "#43a047").to_dict()

    assert spec["mark"] == {"type": "bar", "color": "#43a047"}
    assert spec["encoding"]["x"]["sort"] == ["1. The Pop Era", "2. The Rock Era"]
    rows = next(iter(spec["datasets"].values()))
    assert [r["tracks"] for r in rows] == [20, 12]
