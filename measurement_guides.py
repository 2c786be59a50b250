from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol, Tuple

from step_rules import REQUIRED_MEASUREMENT_KEYS


@dataclass(frozen=True)
class MeasurementGuide:
    garment_type: str
    measurement_key: str
    title: str
    description: str
    video_url: Optional[str] = None
    sketch_url: Optional[str] = None
    video_duration: Optional[str] = None


class MeasurementMediaProvider(Protocol):
    def get_guide(self, garment_type: str, measurement_key: str) -> MeasurementGuide:
        ...


# key -> (title, how to measure)
_MEASUREMENT_TEXT: Mapping[str, Tuple[str, str]] = {
    "neck": ("Neck", "Measure around the neck where the collar sits."),
    "chest": ("Chest", "Measure around the fullest part of the chest, at armpit level."),
    "stomach": ("Stomach", "Measure around the natural waistline."),
    "waist": ("Waist", "Measure at the natural waistline."),
    "hip": ("Hip", "Measure around the fullest part of the hips."),
    "length": ("Length", "Measure from the back of the neck to the desired hem."),
    "shoulder": ("Shoulder", "Measure from shoulder point to shoulder point."),
    "sleeve": ("Sleeve", "Measure from the shoulder seam to the wrist."),
    "inseam": ("Inseam", "Measure from the crotch seam to the bottom of the leg."),
    "outseam": ("Outseam", "Measure from the top of the waistband to the bottom of the leg."),
    "thigh": ("Thigh", "Measure around the fullest part of the thigh."),
}

# Video tutorials exist for these keys only; everything else has a sketch.
_VIDEO_DURATIONS: Mapping[str, str] = {
    "chest": "2:30",
    "neck": "1:45",
    "sleeve": "3:15",
    "shoulder": "2:00",
    "waist": "1:30",
    "length": "2:45",
}


class StaticMeasurementGuides:
    """
    Lookup table of how-to-measure media for every garment's required measurements.
    """

    def __init__(self, *, media_base_url: str = "/media/measurements") -> None:
        base = media_base_url.rstrip("/")
        self._guides: Dict[Tuple[str, str], MeasurementGuide] = {}
        for garment_type, keys in REQUIRED_MEASUREMENT_KEYS.items():
            for key in keys:
                title, description = _MEASUREMENT_TEXT.get(key, (key.replace("_", " ").title(), ""))
                duration = _VIDEO_DURATIONS.get(key)
                self._guides[(garment_type, key)] = MeasurementGuide(
                    garment_type=garment_type,
                    measurement_key=key,
                    title=title,
                    description=description,
                    video_url=f"{base}/videos/{key}.mp4" if duration is not None else None,
                    sketch_url=f"{base}/sketches/{garment_type}/{key}.svg",
                    video_duration=duration,
                )

    def get_guide(self, garment_type: str, measurement_key: str) -> MeasurementGuide:
        guide = self._guides.get((garment_type, measurement_key))
        if guide is None:
            raise KeyError(f"No measurement guide for {garment_type!r} / {measurement_key!r}")
        return guide

    def guides_for(self, garment_type: str) -> Tuple[MeasurementGuide, ...]:
        keys = REQUIRED_MEASUREMENT_KEYS.get(garment_type, ())
        return tuple(self._guides[(garment_type, k)] for k in keys)
