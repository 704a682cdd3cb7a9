"""Festival document models.

A festival is described by a rich nested document (dates, location,
amenities, camping rules). The document is stored verbatim in the
`events.event_data` column; a handful of its fields are also copied into
queryable columns when the event is written.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class EventDate(BaseModel):
    """When the festival runs and how arrival/departure works."""

    start_date: date | None = None
    end_date: date | None = None
    single_day: bool = False
    early_arrival_available: bool = False
    early_arrival_date: str | None = None
    late_departure_available: bool = False


class LocationInfo(BaseModel):
    """Where the festival is.

    Coordinates are optional so that festivals announced before a venue is
    fixed can still be listed; they are range-checked by the event service.
    """

    address: str = ""
    latitude: float | None = Field(default=None, description="Latitude in decimal degrees")
    longitude: float | None = Field(default=None, description="Longitude in decimal degrees")
    venue_name: str | None = None
    parking_info: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class Amenities(BaseModel):
    """On-site facilities."""

    bathrooms: bool = False
    showers: bool = False
    potable_water: bool = False
    wifi: bool = False
    cell_service_quality: str | None = Field(
        default=None, description="good, spotty or none"
    )
    firewood_available: bool = False
    ice_available: bool = False
    trash_service: bool = False
    recycling: bool = False
    laundry: bool = False


class Hookups(BaseModel):
    electric: bool = False
    water: bool = False
    sewer: bool = False
    amp_service: str | None = Field(default=None, description='e.g. "30/50 amp"')


class RvCampingOptions(BaseModel):
    allowed: bool = False
    class_a_allowed: bool = False
    class_b_allowed: bool = False
    class_c_allowed: bool = False
    travel_trailers_allowed: bool = False
    fifth_wheel_allowed: bool = False
    max_length_feet: int | None = None
    max_width_feet: int | None = None
    hookups_available: Hookups | None = None
    dump_station: bool = False


class VehicleCampingOptions(BaseModel):
    van_camping: bool = False
    car_camping: bool = False
    truck_camping: bool = False
    rooftop_tent_allowed: bool = False


class GeneratorQuietHours(BaseModel):
    all_day_restriction: bool = False
    start_time: str | None = Field(default=None, description='"22:00" or "10:00 PM"')
    end_time: str | None = Field(default=None, description='"08:00" or "8:00 AM"')
    days_of_week: list[str] | None = None


class GeneratorOptions(BaseModel):
    generators_allowed: bool = False
    quiet_hours: GeneratorQuietHours | None = None
    max_decibel_limit: int | None = None
    inverter_generators_only: bool = False
    propane_generators_allowed: bool = False
    gasoline_generators_allowed: bool = False
    diesel_generators_allowed: bool = False
    designated_generator_areas: bool = False
    distance_from_neighbors_feet: int | None = None
    fuel_storage_restrictions: str | None = None


class CampingInfo(BaseModel):
    """Camping rules for the festival grounds."""

    camping_allowed: bool = False
    walking_distance: bool = False
    tent_camping: bool = False
    rv_camping: RvCampingOptions = Field(default_factory=RvCampingOptions)
    vehicle_camping: VehicleCampingOptions = Field(default_factory=VehicleCampingOptions)
    campsite_reservations_required: bool = False
    primitive_camping: bool = False
    developed_campsites: bool = False
    max_stay_nights: int | None = None
    pet_friendly: bool = False
    quiet_hours: str | None = None
    fires_allowed: bool = False
    generator_options: GeneratorOptions | None = None


class FestivalDocument(BaseModel):
    """The full festival document submitted by clients and stored as JSON."""

    name: str
    description: str
    event_type_id: int
    website: str | None = None
    date_info: EventDate = Field(default_factory=EventDate)
    location_info: LocationInfo = Field(default_factory=LocationInfo)
    amenities: Amenities = Field(default_factory=Amenities)
    camping_info: CampingInfo | None = None

    @property
    def camping_allowed(self) -> bool:
        return self.camping_info is not None and self.camping_info.camping_allowed


class EventType(BaseModel):
    """Festival category: is this a ren faire, a music festival, a car show?"""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    name: str = Field(..., min_length=1, max_length=128)
    description: str = ""
    map_indicator: str = ""
    category: str = ""


class Event(BaseModel):
    """A stored festival as returned to clients."""

    id: int
    name: str
    description: str
    website: str | None
    event_type: EventType
    latitude: float | None
    longitude: float | None
    start_date: date | None
    end_date: date | None
    camping_allowed: bool
    owner_user_id: str | None = None
    created_at: datetime | None = None
    details: FestivalDocument
