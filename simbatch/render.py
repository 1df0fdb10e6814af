"""Rendering of simulator configuration documents.

The simulator deserialises its configuration with XStream, so the document is
a flat XML element named after the Java config class with one child per
field. Field names and their order are fixed by the simulator; values come
from the matrix point, the shared :class:`RenderConstants` and the path
templates of :class:`DocumentLayout`.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from simbatch.errors import RenderError
from simbatch.models import DocumentLayout, ExperimentPoint, RenderConstants, scalar_text

REQUIRED_AXES = ("count", "algorithm", "seed")
KNOWN_AXES = REQUIRED_AXES + ("distribution",)

FIELD_ORDER = (
    "beta",
    "numTransmitters",
    "numReceivers",
    "radioPower",
    "radioAlpha",
    "squareWidth",
    "squareHeight",
    "universeWidth",
    "universeHeight",
    "randomSeed",
    "numTrials",
    "outputFileName",
    "numThreads",
    "maxRangeMeters",
    "experimentType",
    "gridDensity",
    "randomized",
    "renderConfig",
    "transmittersFile",
    "receiversFile",
    "outputBasePath",
)
DISTRIBUTION_FIELD = "transmitterDistribution"


def _text(value, what: str) -> str:
    if isinstance(value, (int, float, str)):
        text = scalar_text(value)
        if text.strip():
            return text
    raise RenderError(f"{what} must be a non-empty scalar, got {value!r}")


class ConfigRenderer:
    """Turns matrix points into experiment names and config documents.

    Rendering is a pure function of ``(point, constants, layout)``: identical
    inputs give byte-identical output. Values are escaped by the XML
    serialiser, so axis values may contain markup characters.
    """

    def __init__(self, constants: RenderConstants, layout: Optional[DocumentLayout] = None):
        self.constants = constants
        self.layout = layout or DocumentLayout()

    def _axis_values(self, point: ExperimentPoint) -> Dict[str, str]:
        unknown = [name for name in point.names() if name not in KNOWN_AXES]
        if unknown:
            raise RenderError(f"Unknown axis name(s): {', '.join(unknown)}")
        values: Dict[str, str] = {}
        for name in KNOWN_AXES:
            if name not in point:
                if name in REQUIRED_AXES:
                    raise RenderError(f"Missing required axis '{name}'")
                continue
            values[name] = _text(point[name], f"axis '{name}'")
        return values

    def experiment_name(self, point: ExperimentPoint) -> str:
        """``<algorithm>-t<count>-s<seed>[-d<distribution>]``."""
        values = self._axis_values(point)
        name = f"{values['algorithm']}-t{values['count']}-s{values['seed']}"
        if "distribution" in values:
            name += f"-d{values['distribution']}"
        if "/" in name or "\\" in name or "\x00" in name:
            raise RenderError(f"Experiment name {name!r} is not a valid file name", name)
        return name

    def _format(self, template: str, fields: Dict[str, str], what: str) -> str:
        try:
            return template.format(**fields)
        except (KeyError, IndexError, ValueError) as e:
            raise RenderError(
                f"Cannot fill {what} template {template!r}: {e}", fields.get("name")
            ) from e

    def fields(self, point: ExperimentPoint) -> List[Tuple[str, str]]:
        """Ordered ``(field, text)`` pairs of the document for ``point``."""
        values = self._axis_values(point)
        name = self.experiment_name(point)
        tmpl_fields = dict(values, name=name)
        has_distribution = "distribution" in values
        c = self.constants
        layout = self.layout

        rows = [
            ("beta", _text(c.beta, "beta")),
            ("numTransmitters", values["count"]),
            ("numReceivers", _text(c.num_receivers, "num_receivers")),
            ("radioPower", _text(c.radio_power, "radio_power")),
            ("radioAlpha", _text(c.radio_alpha, "radio_alpha")),
            ("squareWidth", _text(c.tx_dimension[0], "tx_dimension width")),
            ("squareHeight", _text(c.tx_dimension[1], "tx_dimension height")),
            ("universeWidth", _text(c.rx_dimension[0], "rx_dimension width")),
            ("universeHeight", _text(c.rx_dimension[1], "rx_dimension height")),
            ("randomSeed", values["seed"]),
            ("numTrials", _text(c.num_trials, "num_trials")),
            ("outputFileName", self._format(layout.output_file, tmpl_fields, "output_file")),
            ("numThreads", _text(c.num_threads, "num_threads")),
            ("maxRangeMeters", _text(c.max_range_meters, "max_range_meters")),
            ("experimentType", values["algorithm"]),
            ("gridDensity", _text(c.grid_density, "grid_density")),
            ("randomized", _text(c.randomized, "randomized")),
            ("renderConfig", _text(c.render_config, "render_config")),
            (
                "transmittersFile",
                self._format(
                    layout.transmitters_template(has_distribution), tmpl_fields, "transmitters_file"
                ),
            ),
            (
                "receiversFile",
                self._format(layout.receivers_file, tmpl_fields, "receivers_file"),
            ),
            (
                "outputBasePath",
                self._format(layout.output_base_path, tmpl_fields, "output_base_path"),
            ),
        ]
        if has_distribution:
            rows.append((DISTRIBUTION_FIELD, values["distribution"]))
        return rows

    def render(self, point: ExperimentPoint) -> str:
        """Return the complete config document for ``point``.

        Raises:
            RenderError: If a parameter is missing or cannot be serialised.
                Nothing is returned in that case.
        """
        root = ET.Element(self.layout.root_tag)
        for tag, text in self.fields(point):
            ET.SubElement(root, tag).text = text
        ET.indent(root, space="\t")
        return ET.tostring(root, encoding="unicode") + "\n"


def parse_config_document(text: str) -> "OrderedDict[str, str]":
    """Parse a rendered document back into ``field -> text`` (document order)."""
    root = ET.fromstring(text)
    return OrderedDict((child.tag, child.text or "") for child in root)
