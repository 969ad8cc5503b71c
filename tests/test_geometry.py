import pytest
from shapely.geometry import MultiPolygon, Point, Polygon

from o2extract.errors import InvalidArgument, InvalidGeometry
from o2extract.geometry import (
    BoundingBox,
    bbox_from_nominatim,
    bounding_box_of,
    scale_box_around_center,
)


def test_bounding_box_of_polygon(square_geojson):
    bbox = bounding_box_of(square_geojson)
    assert bbox.as_tuple() == (4.0, 52.0, 5.0, 53.0)
    assert bbox.width == 1.0
    assert bbox.height == 1.0
    assert bbox.center == (4.5, 52.5)


def test_bounding_box_of_multipolygon_covers_all_parts():
    parts = MultiPolygon([
        Polygon([(0, 0), (1, 0), (1, 1), (0, 1)]),
        Polygon([(10, -5), (12, -5), (12, -3), (10, -3)]),
    ])
    assert bounding_box_of(parts).as_tuple() == (0.0, -5.0, 12.0, 1.0)


def test_bounding_box_of_point_is_degenerate():
    bbox = bounding_box_of(Point(3.0, 7.0))
    assert bbox.as_tuple() == (3.0, 7.0, 3.0, 7.0)
    assert bbox.is_degenerate


def test_bounding_box_of_empty_geometry_raises():
    with pytest.raises(InvalidGeometry):
        bounding_box_of(Polygon())


def test_unparseable_geometry_raises():
    with pytest.raises(InvalidGeometry):
        bounding_box_of("{not json")
    with pytest.raises(InvalidGeometry):
        bounding_box_of(None)


def test_bounding_box_rejects_swapped_corners():
    with pytest.raises(InvalidArgument):
        BoundingBox(xmin=5, ymin=0, xmax=4, ymax=1)
    with pytest.raises(InvalidArgument):
        BoundingBox(xmin=0, ymin=0, xmax=float("nan"), ymax=1)


def test_scale_keeps_center_and_scales_extent():
    bbox = BoundingBox(0.0, 0.0, 2.0, 4.0)
    scaled = scale_box_around_center(bbox, 2.0)
    assert scaled.center == pytest.approx(bbox.center)
    assert scaled.width == pytest.approx(4.0)
    assert scaled.height == pytest.approx(8.0)
    assert scaled.as_tuple() == pytest.approx((-1.0, -2.0, 3.0, 6.0))


def test_scale_by_one_is_identity():
    bbox = BoundingBox(1.5, -2.0, 3.25, 8.0)
    assert scale_box_around_center(bbox, 1) == bbox


def test_scale_below_one_shrinks():
    scaled = scale_box_around_center(BoundingBox(0.0, 0.0, 4.0, 4.0), 0.5)
    assert scaled.as_tuple() == pytest.approx((1.0, 1.0, 3.0, 3.0))


@pytest.mark.parametrize("factor", [0, -1, float("inf"), float("nan")])
def test_scale_rejects_bad_factor(factor):
    with pytest.raises(InvalidArgument):
        scale_box_around_center(BoundingBox(0, 0, 1, 1), factor)


def test_bbox_from_nominatim_order():
    bbox = bbox_from_nominatim(["52.27", "52.43", "4.72", "5.07"])
    assert bbox.as_tuple() == (4.72, 52.27, 5.07, 52.43)


def test_bbox_from_nominatim_malformed():
    with pytest.raises(InvalidGeometry):
        bbox_from_nominatim(["52.27", "north"])
