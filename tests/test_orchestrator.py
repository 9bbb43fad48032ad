import asyncio

import pytest

from geoassign.errors import AddressNotFound, ProviderError
from geoassign.models.domain import (
    AssignmentState,
    Branch,
    Coordinate,
    DeliveryZone,
    FulfillmentType,
    GeocodeResult,
    RouteLeg,
)
from geoassign.services.assignment.orchestrator import AssignmentOrchestrator
from geoassign.services.geospatial import ring_from_pairs
from geoassign.services.ranking import BranchRanker


def _square(lat_min, lon_min, lat_max, lon_max):
    return ring_from_pairs([(lat_min, lon_min), (lat_max, lon_min), (lat_max, lon_max), (lat_min, lon_max)])


CENTRE = DeliveryZone(
    id="centre",
    name="Centre",
    polygons=(_square(50.40, 30.40, 50.50, 30.60),),
    flat_price=50.0,
    creation_order=0,
    min_order_amount=200.0,
    free_delivery_threshold=300.0,
)
LEFT_BANK = DeliveryZone(
    id="left-bank",
    name="Left bank",
    polygons=(_square(50.40, 30.60, 50.50, 30.80),),
    flat_price=90.0,
    creation_order=1,
)
ZONES = [LEFT_BANK, CENTRE]

IN_CENTRE = Coordinate(50.45, 30.50)
IN_LEFT_BANK = Coordinate(50.45, 30.70)
OUTSIDE = Coordinate(50.70, 30.50)

PODIL = Branch(id="podil", name="Podil", coordinate=Coordinate(50.465, 30.515))
DARNYTSIA = Branch(id="darnytsia", name="Darnytsia", coordinate=Coordinate(50.43, 30.65))
WAREHOUSE = Branch(id="warehouse", name="Warehouse", coordinate=None, address="Kyiv warehouse")
BRANCHES = [PODIL, DARNYTSIA, WAREHOUSE]


class DummyGeocoder:
    def __init__(self, addresses: dict[str, Coordinate]):
        self.addresses = addresses
        self.calls: list[str] = []
        self.reverse_calls: list[Coordinate] = []
        self.reverse_error: Exception | None = None

    async def geocode(self, address):
        self.calls.append(address)
        if address not in self.addresses:
            raise AddressNotFound(address)
        return GeocodeResult(self.addresses[address], f"{address}, Kyiv, Ukraine")

    async def reverse_geocode(self, coordinate):
        self.reverse_calls.append(coordinate)
        if self.reverse_error:
            raise self.reverse_error
        return f"Pin at {coordinate.latitude:.3f},{coordinate.longitude:.3f}"


class DummyRouter:
    """Leg length grows with planar distance so the closest branch wins."""

    def __init__(self, unavailable: set[str] | None = None):
        self.unavailable = unavailable or set()
        self.calls = 0

    async def route_distance(self, origin, destination):
        self.calls += 1
        for branch in BRANCHES:
            if branch.coordinate == origin and branch.id in self.unavailable:
                return None
        km = abs(origin.latitude - destination.latitude) * 111 + abs(origin.longitude - destination.longitude) * 71
        return RouteLeg(distance_km=round(km, 3), duration_minutes=int(km * 2))


def _orchestrator(geocoder=None, router=None):
    geocoder = geocoder or DummyGeocoder({"Khreshchatyk 1": IN_CENTRE, "Kharkivske 5": IN_LEFT_BANK})
    router = router or DummyRouter()
    return AssignmentOrchestrator(geocoder, BranchRanker(router)), geocoder, router


def test_assign_composes_branch_zone_and_price():
    orchestrator, _, _ = _orchestrator()

    result = asyncio.run(orchestrator.assign("Khreshchatyk 1", BRANCHES, ZONES, 250.0, FulfillmentType.DELIVERY))

    assert result.state == AssignmentState.RESOLVED
    assert result.branch.id == "podil"
    assert result.zone.id == "centre"
    assert result.delivery_price == 50.0
    assert result.is_manual_zone is False
    assert result.is_free_delivery is False
    assert result.is_below_minimum_order is False
    assert result.distance_km is not None and result.duration_minutes is not None
    assert result.formatted_address == "Khreshchatyk 1, Kyiv, Ukraine"
    assert result.order_total == pytest.approx(300.0)


def test_assign_outside_all_zones_leaves_price_unknown():
    orchestrator, _, _ = _orchestrator(geocoder=DummyGeocoder({"Vyshhorod": OUTSIDE}))

    result = asyncio.run(orchestrator.assign("Vyshhorod", BRANCHES, ZONES, 100.0))

    assert result.zone is None
    assert result.delivery_price is None
    assert result.branch is not None


def test_address_not_found_propagates_and_keeps_session_unresolved():
    orchestrator, _, _ = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES)

    with pytest.raises(AddressNotFound):
        asyncio.run(session.locate_address("Atlantis"))

    assert session.state == AssignmentState.UNRESOLVED
    assert session.result().zone is None


def test_geocode_results_are_memoized_per_session():
    orchestrator, geocoder, router = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES)

    asyncio.run(session.locate_address("Khreshchatyk 1"))
    asyncio.run(session.locate_address(" Khreshchatyk 1 "))

    assert geocoder.calls == ["Khreshchatyk 1"]
    # ranking re-runs on every coordinate change
    assert router.calls == 4


def test_manual_zone_survives_coordinate_changes_until_cleared():
    orchestrator, _, router = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES, subtotal=100.0)
    asyncio.run(session.locate_address("Khreshchatyk 1"))

    pinned = session.set_manual_zone("left-bank")
    assert pinned.state == AssignmentState.MANUAL_OVERRIDE
    assert pinned.zone.id == "left-bank"
    assert pinned.is_manual_zone is True
    assert pinned.delivery_price == 90.0

    calls_before = router.calls
    moved = asyncio.run(session.place_pin(Coordinate(50.46, 30.45)))
    assert moved.zone.id == "left-bank"
    assert router.calls > calls_before  # branches are still re-ranked

    cleared = session.clear_manual_zone()
    assert cleared.state == AssignmentState.RESOLVED
    assert cleared.zone.id == "centre"
    assert cleared.is_manual_zone is False


def test_clearing_manual_zone_detects_against_last_coordinate():
    orchestrator, _, _ = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES)
    session.set_manual_zone("centre")

    asyncio.run(session.place_pin(IN_LEFT_BANK))
    assert session.result().zone.id == "centre"

    assert session.clear_manual_zone().zone.id == "left-bank"


def test_manual_zone_before_any_address():
    orchestrator, _, _ = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES)

    assert session.set_manual_zone("centre").state == AssignmentState.MANUAL_OVERRIDE
    assert session.clear_manual_zone().state == AssignmentState.UNRESOLVED

    with pytest.raises(KeyError):
        session.set_manual_zone("missing")


def test_place_pin_reverse_geocodes_and_tolerates_provider_failure():
    orchestrator, geocoder, _ = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES)

    result = asyncio.run(session.place_pin(IN_LEFT_BANK))
    assert result.formatted_address == "Pin at 50.450,30.700"
    assert result.zone.id == "left-bank"
    assert result.branch.id == "darnytsia"

    geocoder.reverse_error = ProviderError("geocoding", "timeout")
    result = asyncio.run(session.place_pin(IN_CENTRE))
    assert result.formatted_address is None
    assert result.zone.id == "centre"


def test_order_changes_reprice_without_network():
    orchestrator, geocoder, router = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES, subtotal=150.0)
    asyncio.run(session.locate_address("Khreshchatyk 1"))
    calls = (len(geocoder.calls), router.calls)

    below = session.result()
    assert below.is_below_minimum_order is True

    free = session.update_order(subtotal=300.0)
    assert free.is_free_delivery is True
    assert free.delivery_price == 0

    pickup = session.update_order(subtotal=150.0, fulfillment_type=FulfillmentType.PICKUP)
    assert pickup.is_below_minimum_order is False
    assert pickup.delivery_price == 0

    assert (len(geocoder.calls), router.calls) == calls


def test_no_routable_branch_falls_back_to_manual_selection():
    router = DummyRouter(unavailable={"podil", "darnytsia"})
    orchestrator, _, _ = _orchestrator(router=router)
    session = orchestrator.open_session(BRANCHES, ZONES, subtotal=250.0)

    result = asyncio.run(session.locate_address("Khreshchatyk 1"))
    assert result.branch is None
    assert "No branch selected." in session.submission_issues()

    chosen = asyncio.run(session.select_branch("warehouse"))
    assert chosen.branch.id == "warehouse"
    assert chosen.distance_km is None
    assert session.submission_issues() == []

    with pytest.raises(KeyError):
        asyncio.run(session.select_branch("nope"))


def test_manual_branch_uses_ranked_leg():
    orchestrator, _, _ = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES)
    asyncio.run(session.locate_address("Khreshchatyk 1"))

    ranked = {item.branch.id: item.leg for item in session.ranking.ranked}
    chosen = asyncio.run(session.select_branch("darnytsia"))

    assert chosen.branch.id == "darnytsia"
    assert chosen.distance_km == ranked["darnytsia"].distance_km


def test_submission_issues_and_manual_price():
    orchestrator, _, _ = _orchestrator(geocoder=DummyGeocoder({"Vyshhorod": OUTSIDE, "Khreshchatyk 1": IN_CENTRE}))
    session = orchestrator.open_session(BRANCHES, ZONES, subtotal=120.0)

    assert "Delivery address is not resolved." in session.submission_issues()

    asyncio.run(session.locate_address("Vyshhorod"))
    assert any("No delivery zone" in issue for issue in session.submission_issues())

    priced = session.set_manual_delivery_price(150.0)
    assert priced.delivery_price == 150.0
    assert session.submission_issues() == []

    asyncio.run(session.locate_address("Khreshchatyk 1"))
    issues = session.submission_issues()
    assert len(issues) == 1
    assert "add 80.00 more" in issues[0]

    with pytest.raises(ValueError):
        session.set_manual_delivery_price(-1.0)


def test_order_fields():
    orchestrator, _, _ = _orchestrator()
    session = orchestrator.open_session(BRANCHES, ZONES, subtotal=320.0)
    asyncio.run(session.locate_address("Khreshchatyk 1"))
    session.set_manual_zone("centre")

    fields = session.order_fields()

    assert fields["branch_id"] == "podil"
    assert fields["courier_zone_id"] == "centre"
    assert fields["delivery_price_uah"] == 0
    assert fields["courier_zone_manual"] is True
    assert fields["distance_km"] == round(session.result().distance_km, 1)
    assert isinstance(fields["duration_minutes"], int)


class SlowCentreRouter(DummyRouter):
    """Legs towards the centre take noticeably longer than any other leg."""

    async def route_distance(self, origin, destination):
        if destination == IN_CENTRE:
            await asyncio.sleep(0.05)
        return await super().route_distance(origin, destination)


def test_overlapping_relocations_keep_branch_consistent_with_coordinate():
    orchestrator, _, _ = _orchestrator(router=SlowCentreRouter())
    session = orchestrator.open_session(BRANCHES, ZONES)

    async def edit():
        await asyncio.gather(
            session.locate_address("Khreshchatyk 1"),
            session.place_pin(IN_LEFT_BANK),
        )

    asyncio.run(edit())
    result = session.result()

    assert result.coordinate == IN_LEFT_BANK
    assert result.zone.id == "left-bank"
    assert result.branch.id == "darnytsia"
    assert result.ranked[0].branch.id == "darnytsia"
    expected = abs(DARNYTSIA.coordinate.latitude - 50.45) * 111 + abs(DARNYTSIA.coordinate.longitude - 30.70) * 71
    assert result.distance_km == pytest.approx(expected, abs=1e-3)
    assert result.formatted_address.startswith("Pin at 50.450,30.700")
