"""
Asset lifecycle: transitions, status history, condition, maintenance and revaluation
"""
import threading
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from hr_ops.buisness.assets.asset_context import AssetContext
from hr_ops.buisness.assets.state_machine import AssetStateMachine
from hr_ops.buisness.core.errors import Forbidden, InvalidTransition, ValidationFailure
from hr_ops.data.assets.asset import Asset
from hr_ops.data.core.user_info.user import User
from hr_ops.services.lifecycle_service import apply_asset_transition, compute_current_value
from hr_ops.utils.time_utils import utcnow_naive


def new_asset(actor, **overrides):
    fields = {
        'asset_type': 'laptop',
        'brand': 'Lenovo',
        'model_name': 'T14',
        'serial_number': None,
        'purchase_cost': 100000,
        'purchase_date': utcnow_naive() - timedelta(days=2 * 365 + 10),
        'depreciation_rate': 20,
        'current_location': 'HQ',
    }
    fields.update(overrides)
    return AssetContext.create(actor, **fields)


def test_create_stores_identifier_and_current_value(app, asset_manager):
    asset = new_asset(asset_manager).asset

    assert asset.asset_id == f"ASSET-{utcnow_naive().year}-000001"
    assert asset.status == 'available'
    assert asset.current_value == Decimal('60000.00')
    assert asset.status_history == []
    assert asset.full_name == 'Lenovo T14 laptop'
    assert asset.age_in_years == 2


def test_create_requires_manage_permission(app, manager):
    with pytest.raises(Forbidden):
        new_asset(manager)
    assert Asset.query.count() == 0


def test_create_rejects_duplicate_serial(app, asset_manager):
    new_asset(asset_manager, serial_number='SN-1')
    with pytest.raises(ValidationFailure):
        new_asset(asset_manager, serial_number='SN-1')


def test_assign_and_return_record_history(app, asset_manager):
    context = new_asset(asset_manager)

    context.assign(asset_manager, assignee='EMP-0042', location='Pune')
    asset = context.asset
    assert asset.status == 'allocated'
    assert asset.assigned_to_ref == 'EMP-0042'
    assert asset.assigned_by_id == asset_manager.id
    assert asset.current_location == 'Pune'

    context.return_asset(asset_manager, condition='fair')
    assert asset.status == 'available'
    assert asset.assigned_to_ref is None
    assert asset.condition_rating == 'fair'

    history = [entry.to_dict() for entry in asset.status_history]
    assert [(h['previous_status'], h['status']) for h in history] == [
        ('available', 'allocated'),
        ('allocated', 'available'),
    ]
    assert history[0]['reason'] == 'Assigned to associate: EMP-0042'
    assert history[1]['reason'] == 'Asset returned in fair condition'
    assert history[0]['changed_by'] == asset_manager.id


def test_assign_requires_available_status(app, asset_manager):
    context = new_asset(asset_manager)
    context.assign(asset_manager, assignee='EMP-1')

    with pytest.raises(InvalidTransition) as excinfo:
        context.assign(asset_manager, assignee='EMP-2')

    assert excinfo.value.current_status == 'allocated'
    assert context.asset.assigned_to_ref == 'EMP-1'
    assert len(context.status_history) == 1


def test_assign_requires_assignee(app, asset_manager):
    context = new_asset(asset_manager)
    with pytest.raises(ValidationFailure):
        apply_asset_transition(context.asset, 'assign', asset_manager)
    assert context.status == 'available'


def test_transitions_require_manage_permission(app, asset_manager, branch_user):
    context = new_asset(asset_manager)
    with pytest.raises(Forbidden):
        context.send_to_maintenance(branch_user)
    assert context.status == 'available'
    assert context.status_history == []


def test_dispose_records_disposal_and_is_terminal(app, asset_manager):
    context = new_asset(asset_manager)
    context.dispose(asset_manager, method='recycled', value='1500.50', notes='Battery swollen')

    asset = context.asset
    assert asset.status == 'disposed'
    assert asset.disposal_method == 'recycled'
    assert asset.disposal_value == Decimal('1500.50')
    assert asset.disposed_by_id == asset_manager.id
    assert asset.disposal_date is not None
    assert context.allowed_actions() == set()

    with pytest.raises(InvalidTransition):
        context.dispose(asset_manager)
    assert len(context.status_history) == 1


def test_dispose_rejects_unknown_method(app, asset_manager):
    context = new_asset(asset_manager)
    with pytest.raises(ValidationFailure):
        context.dispose(asset_manager, method='burned')
    assert context.status == 'available'


def test_lost_and_recovered(app, asset_manager):
    context = new_asset(asset_manager)
    context.assign(asset_manager, assignee='EMP-9')
    context.mark_lost(asset_manager, reason='Left in taxi')
    assert context.status == 'lost'

    with pytest.raises(InvalidTransition):
        context.mark_lost(asset_manager)

    apply_asset_transition(context.asset, 'recover', asset_manager, location='HQ')
    assert context.status == 'available'
    assert context.status_history[1].reason == 'Left in taxi'


def test_ship_and_receive(app, asset_manager):
    context = new_asset(asset_manager)
    apply_asset_transition(context.asset, 'ship', asset_manager, reason='To branch office')
    assert context.status == 'in_transit'
    apply_asset_transition(context.asset, 'receive', asset_manager, location='Branch 7')
    assert context.status == 'available'
    assert context.asset.current_location == 'Branch 7'


def test_maintenance_cycle(app, asset_manager):
    context = new_asset(asset_manager)
    context.send_to_maintenance(asset_manager, reason='Fan noise')
    assert context.status == 'under_maintenance'

    with pytest.raises(InvalidTransition):
        context.send_to_maintenance(asset_manager)

    apply_asset_transition(context.asset, 'complete_maintenance', asset_manager)
    assert context.status == 'available'


def test_damage_does_not_override_maintenance(app, asset_manager):
    context = new_asset(asset_manager)
    context.send_to_maintenance(asset_manager)

    with pytest.raises(InvalidTransition):
        context.mark_damaged(asset_manager)

    context.update_condition('damaged', asset_manager)
    assert context.status == 'under_maintenance'
    assert context.asset.condition_rating == 'damaged'
    assert len(context.status_history) == 1


def test_damaged_condition_marks_asset_damaged(app, asset_manager):
    context = new_asset(asset_manager)
    context.update_condition('damaged', asset_manager, notes='Cracked screen')

    assert context.status == 'damaged'
    assert context.asset.condition_rating == 'damaged'
    assert context.status_history[-1].reason == 'Cracked screen'


def test_other_condition_changes_keep_status(app, asset_manager):
    context = new_asset(asset_manager)
    context.update_condition('poor', asset_manager)
    assert context.status == 'available'
    assert context.asset.condition_rating == 'poor'
    assert context.status_history == []

    with pytest.raises(ValidationFailure):
        context.update_condition('shiny', asset_manager)


def test_every_non_terminal_state_can_be_disposed():
    for state in AssetStateMachine.NON_TERMINAL_STATES:
        assert AssetStateMachine.next_state(state, 'dispose') == 'disposed'
    assert AssetStateMachine.next_state('disposed', 'dispose') is None


def test_maintenance_history_reads_most_recent_first(app, asset_manager):
    context = new_asset(asset_manager)
    context.add_maintenance(asset_manager, 'routine', 'Quarterly check', date=datetime(2025, 1, 10),
                            next_maintenance_date=datetime(2025, 4, 10))
    context.add_maintenance(asset_manager, 'repair', 'Keyboard replaced', date=datetime(2025, 3, 2), cost=2500,
                            next_maintenance_date=datetime(2025, 9, 2))
    context.add_maintenance(asset_manager, 'cleaning', 'Dust removal', date=datetime(2024, 12, 1))

    descriptions = [record.description for record in context.maintenance_history]
    assert descriptions == ['Keyboard replaced', 'Quarterly check', 'Dust removal']
    assert context.asset.next_maintenance_due == datetime(2025, 9, 2)


def test_maintenance_input_is_validated(app, asset_manager):
    context = new_asset(asset_manager)
    with pytest.raises(ValidationFailure):
        context.add_maintenance(asset_manager, 'repair', 'Screen', cost=-5)
    with pytest.raises(ValidationFailure) as excinfo:
        context.add_maintenance(asset_manager, 'polish', 'Screen')
    error = excinfo.value
    assert (error.entity_id, error.action, error.current_status) == (context.asset_id, 'add_maintenance', 'available')
    with pytest.raises(ValidationFailure):
        context.add_maintenance(asset_manager, 'repair', '')
    assert context.maintenance_history == []


def test_update_financials_recomputes_current_value(app, asset_manager):
    context = new_asset(asset_manager)
    assert context.asset.current_value == Decimal('60000.00')

    context.update_financials(asset_manager, depreciation_rate=10)
    assert context.asset.current_value == Decimal('80000.00')

    context.update_financials(asset_manager, purchase_cost=50000)
    assert context.asset.current_value == Decimal('40000.00')

    context.update_financials(asset_manager, purchase_date=None)
    assert context.asset.current_value == Decimal('50000.00')


def test_update_financials_rejects_bad_rate(app, asset_manager):
    context = new_asset(asset_manager)
    with pytest.raises(ValidationFailure):
        context.update_financials(asset_manager, depreciation_rate=150)
    assert context.asset.depreciation_rate == Decimal('20')
    assert context.asset.current_value == Decimal('60000.00')


def test_compute_current_value_service_does_not_persist(app, asset_manager):
    asset = new_asset(asset_manager).asset
    later = utcnow_naive() + timedelta(days=365 * 4)

    assert compute_current_value(asset, as_of=later) == Decimal('0.00')
    assert asset.current_value == Decimal('60000.00')


def test_queries(app, asset_manager):
    spare = new_asset(asset_manager, asset_type='monitor', current_location='Store',
                      warranty_expiry=utcnow_naive() + timedelta(days=10))
    busy = new_asset(asset_manager, current_location='Store')
    busy.assign(asset_manager, assignee='EMP-1', location='Desk 4')

    assert [a.asset_id for a in Asset.find_available('monitor')] == [spare.asset_id]
    assert [a.asset_id for a in Asset.find_by_location('Store')] == [spare.asset_id]
    assert [a.asset_id for a in Asset.find_expiring_warranties()] == [spare.asset_id]
    assert spare.asset.warranty_status == 'expiring_soon'
    assert busy.asset.warranty_status == 'unknown'


def test_maintenance_due_query(app, asset_manager):
    due = new_asset(asset_manager)
    due.add_maintenance(asset_manager, 'routine', 'Battery check', date=datetime(2025, 1, 10),
                        next_maintenance_date=datetime(2025, 2, 10))
    gone = new_asset(asset_manager)
    gone.add_maintenance(asset_manager, 'routine', 'Battery check', date=datetime(2025, 1, 10),
                         next_maintenance_date=datetime(2025, 2, 10))
    gone.dispose(asset_manager, method='recycled')
    new_asset(asset_manager)

    assert [a.asset_id for a in Asset.find_maintenance_due(now=datetime(2025, 3, 1))] == [due.asset_id]
    assert Asset.find_maintenance_due(now=datetime(2025, 1, 1)) == []


def test_transition_input_errors_carry_current_status(app, asset_manager):
    context = new_asset(asset_manager)
    with pytest.raises(ValidationFailure) as excinfo:
        context.dispose(asset_manager, method='sold', value=-5)

    error = excinfo.value.to_dict()
    assert error['entity_id'] == context.asset_id
    assert error['action'] == 'dispose'
    assert error['current_status'] == 'available'
    assert context.status == 'available'


def test_concurrent_creations_with_one_serial_keep_a_single_asset(app, db, asset_manager):
    workers = 4
    actor_id = asset_manager.id
    created = []
    errors = []
    results_lock = threading.Lock()
    start = threading.Barrier(workers)

    def register():
        with app.app_context():
            try:
                actor = db.session.get(User, actor_id)
                start.wait()
                context = new_asset(actor, serial_number='SN-1')
                with results_lock:
                    created.append(context.asset_id)
            except Exception as e:  # collected and asserted below
                with results_lock:
                    errors.append(e)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=register) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(created) == 1
    assert len(errors) == workers - 1
    assert all(isinstance(e, ValidationFailure) for e in errors)
    assert all(e.action == 'create' for e in errors)
    assert Asset.query.filter_by(serial_number='SN-1').count() == 1


def test_search(app, asset_manager):
    laptop = new_asset(asset_manager, serial_number='LNV-001', current_location='Pune Office',
                       purchase_date=datetime(2024, 3, 1))
    monitor = new_asset(asset_manager, asset_type='monitor', brand='Dell', model_name='P2422H',
                        current_location='Mumbai Store', purchase_date=datetime(2025, 6, 1))
    laptop.assign(asset_manager, assignee='EMP-7')

    assert [a.asset_id for a in Asset.search(asset_type='monitor')] == [monitor.asset_id]
    assert [a.asset_id for a in Asset.search(location='pune')] == [laptop.asset_id]
    assert [a.asset_id for a in Asset.search(assigned_to='EMP-7')] == [laptop.asset_id]
    assert [a.asset_id for a in Asset.search(status='available')] == [monitor.asset_id]
    assert [a.asset_id for a in Asset.search(from_date=datetime(2025, 1, 1))] == [monitor.asset_id]
    assert [a.asset_id for a in Asset.search(to_date=datetime(2025, 1, 1))] == [laptop.asset_id]
    assert [a.asset_id for a in Asset.search(text='lnv')] == [laptop.asset_id]
    assert [a.asset_id for a in Asset.search(text='dell')] == [monitor.asset_id]
    assert [a.asset_id for a in Asset.search(limit=1, page=2)] == [laptop.asset_id]
