"""
Unit tests for vehicle persistence rules
"""
import pytest

from carshow.core.exceptions import ConflictError, ValidationFailure
from carshow.models import User
from carshow.services import vehicles as vehicle_service
from carshow.services.assets import AssetManager
from carshow.services.images import ImagePipeline


@pytest.fixture
def assets(settings) -> AssetManager:
    return AssetManager(ImagePipeline.from_settings(settings))


async def register(db_session, assets, owner, **fields):
    fields.setdefault('make', 'Ford')
    fields.setdefault('model', 'Mustang')
    return await vehicle_service.register_vehicle(db_session, assets, owner.id, **fields)


class TestYear:
    """Tests for model year cleaning"""

    @pytest.mark.parametrize('value,expected', [('1967', '1967'), (' 2004 ', '2004'), ('', None), (None, None)])
    def test_valid(self, value, expected):
        assert vehicle_service.clean_year(value) == expected

    @pytest.mark.parametrize('value', ['67', '19677', 'abcd'])
    def test_invalid(self, value):
        with pytest.raises(ValidationFailure, match='4-digit'):
            vehicle_service.clean_year(value)


class TestRegistration:
    """Tests for creating vehicles"""

    async def test_new_vehicle_is_inactive(self, db_session, assets, make_user):
        owner = await make_user()
        vehicle = await register(db_session, assets, owner, year='1967')
        assert vehicle.id is not None
        assert vehicle.is_active is False
        assert vehicle.voter_id is None
        assert vehicle.user_id == owner.id

    async def test_owner_listing(self, db_session, assets, make_user):
        owner = await make_user()
        other = await make_user()
        await register(db_session, assets, owner)
        await register(db_session, assets, other)
        mine = await vehicle_service.list_vehicles_for_user(db_session, owner.id)
        assert [vehicle.user_id for vehicle in mine] == [owner.id]


class TestVoterId:
    """Voter IDs are unique across vehicles"""

    async def test_assign_voter_id(self, db_session, assets, make_user):
        vehicle = await register(db_session, assets, await make_user())
        updated = await vehicle_service.update_vehicle(
            db_session, assets, vehicle, voter_id=' A-12 ', set_voter_id=True
        )
        assert updated.voter_id == 'A-12'

    async def test_duplicate_voter_id_rejected(self, db_session, assets, make_user):
        first = await register(db_session, assets, await make_user())
        second = await register(db_session, assets, await make_user())
        await vehicle_service.update_vehicle(db_session, assets, first, voter_id='42', set_voter_id=True)

        with pytest.raises(ConflictError) as excinfo:
            await vehicle_service.update_vehicle(db_session, assets, second, voter_id='42', set_voter_id=True)

        assert excinfo.value.value == '42'
        assert 'already assigned to another vehicle' in excinfo.value.message

    async def test_same_vehicle_may_keep_its_voter_id(self, db_session, assets, make_user):
        vehicle = await register(db_session, assets, await make_user())
        await vehicle_service.update_vehicle(db_session, assets, vehicle, voter_id='7', set_voter_id=True)
        updated = await vehicle_service.update_vehicle(
            db_session, assets, vehicle, voter_id='7', set_voter_id=True, make='Chevrolet'
        )
        assert updated.voter_id == '7'
        assert updated.make == 'Chevrolet'

    async def test_blank_voter_id_clears_it(self, db_session, assets, make_user):
        vehicle = await register(db_session, assets, await make_user())
        await vehicle_service.update_vehicle(db_session, assets, vehicle, voter_id='9', set_voter_id=True)
        updated = await vehicle_service.update_vehicle(db_session, assets, vehicle, voter_id='  ', set_voter_id=True)
        assert updated.voter_id is None

    async def test_many_vehicles_without_voter_id(self, db_session, assets, make_user):
        owner = await make_user()
        for _ in range(3):
            await register(db_session, assets, owner)
        assert len(await vehicle_service.list_vehicles_for_user(db_session, owner.id)) == 3


class TestActivation:
    """Activating a vehicle lets its owner into the chat"""

    async def test_activation_enables_owner_chat(self, db_session, assets, make_user, app):
        owner = await make_user()
        assert owner.chat_enabled is False
        vehicle = await register(db_session, assets, owner)

        await vehicle_service.update_vehicle(db_session, assets, vehicle, is_active=True)

        async with app.state.session_factory() as fresh:
            reloaded = await fresh.get(User, owner.id)
            assert reloaded.chat_enabled is True

    async def test_deactivation_keeps_chat(self, db_session, assets, make_user, app):
        owner = await make_user()
        vehicle = await register(db_session, assets, owner)
        await vehicle_service.update_vehicle(db_session, assets, vehicle, is_active=True)
        updated = await vehicle_service.update_vehicle(db_session, assets, vehicle, is_active=False)

        assert updated.is_active is False
        async with app.state.session_factory() as fresh:
            assert (await fresh.get(User, owner.id)).chat_enabled is True

    async def test_invalid_year_changes_nothing(self, db_session, assets, make_user):
        vehicle = await register(db_session, assets, await make_user(), year='1999')
        with pytest.raises(ValidationFailure):
            await vehicle_service.update_vehicle(db_session, assets, vehicle, year='99', make='Other')
        assert vehicle.year == '1999'
        assert vehicle.make == 'Ford'
