import pytest

from velotour.services.routes.gpx_parser import GPXParseError, gpx_to_geometry, parse_gpx

TWO_SEGMENT_GPX = """<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">
  <metadata><name>Sample Tour</name><desc>Two pieces</desc></metadata>
  <trk>
    <name>Track</name>
    <trkseg>
      <trkpt lat="48.0" lon="2.0"><ele>100</ele></trkpt>
      <trkpt lat="48.01" lon="2.0"><ele>110</ele></trkpt>
    </trkseg>
    <trkseg>
      <trkpt lat="49.0" lon="3.0"><ele>105</ele></trkpt>
      <trkpt lat="49.01" lon="3.0"><ele>95</ele></trkpt>
    </trkseg>
  </trk>
</gpx>"""


def test_parse_gpx_reads_metadata_and_segments() -> None:
    data = parse_gpx(TWO_SEGMENT_GPX)

    assert data.name == "Sample Tour"
    assert data.description == "Two pieces"
    assert len(data.tracks) == 1
    assert [len(segment.points) for segment in data.tracks[0].segments] == [2, 2]
    assert data.tracks[0].segments[0].points[1].elevation == 110.0


def test_distance_does_not_accumulate_across_segment_gap() -> None:
    geometry = gpx_to_geometry(parse_gpx(TWO_SEGMENT_GPX), fallback_name="fallback")

    assert geometry.name == "Sample Tour"
    assert len(geometry.points) == 4
    assert len(geometry.segments) == 2
    # two 0.01 degree hops, the ~130 km jump between segments is ignored
    assert geometry.total_distance == pytest.approx(2.224, abs=0.01)
    assert geometry.points[2].distance_from_start == geometry.points[1].distance_from_start
    assert geometry.points[-1].distance_from_start == pytest.approx(geometry.total_distance)


def test_elevation_changes_stay_within_segments() -> None:
    geometry = gpx_to_geometry(parse_gpx(TWO_SEGMENT_GPX), fallback_name="fallback")

    assert geometry.elevation_gain == pytest.approx(10.0)
    assert geometry.elevation_loss == pytest.approx(10.0)
    assert geometry.bounds.min_lat == 48.0
    assert geometry.bounds.max_lon == 3.0


def test_missing_elevation_is_skipped() -> None:
    text = """<gpx><trk><trkseg>
      <trkpt lat="48.0" lon="2.0"></trkpt>
      <trkpt lat="48.0" lon="2.01"><ele>50</ele></trkpt>
      <trkpt lat="48.0" lon="2.02"><ele>60</ele></trkpt>
    </trkseg></trk></gpx>"""
    geometry = gpx_to_geometry(parse_gpx(text), fallback_name="fallback")

    assert geometry.name == "fallback"
    assert geometry.elevation_gain == pytest.approx(10.0)
    assert geometry.elevation_loss == 0.0


@pytest.mark.parametrize(
    "text",
    [
        "this is not xml",
        "<gpx><trk>",
        '<gpx><trk><trkseg><trkpt lat="abc" lon="2.0"/></trkseg></trk></gpx>',
    ],
)
def test_parse_gpx_rejects_malformed_documents(text: str) -> None:
    with pytest.raises(GPXParseError):
        parse_gpx(text)


@pytest.mark.parametrize("text", ["<gpx><trk><trkseg/></trk></gpx>", "<gpx/>"])
def test_geometry_requires_track_points(text: str) -> None:
    with pytest.raises(GPXParseError):
        gpx_to_geometry(parse_gpx(text), fallback_name="empty")
