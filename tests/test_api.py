import pytest
from fastapi.testclient import TestClient

from backend import app

client = TestClient(app)

STAFF = [
    {'id': 'e1', 'name': 'Alice', 'role': 'server', 'hours_worked': 6, 'performance_score': 0.9},
    {'id': 'e2', 'name': 'Bob', 'role': 'host', 'hours_worked': 2, 'performance_score': 0.9},
]


def test_root():
    assert client.get('/').json() == {'message': 'ShiftMint Tip & Payroll API'}


def test_calculate_by_hours():
    response = client.post('/tips/calculate', json={
        'total_sales': 1000, 'service_charge_rate': 18, 'policy': 'hours', 'staff': STAFF})

    assert response.status_code == 200
    body = response.json()
    assert body['total_tips'] == 180.0
    assert body['total_distributed'] == 180.0
    assert [r['tip_amount'] for r in body['results']] == [135.0, 45.0]
    assert [r['share_percentage'] for r in body['results']] == pytest.approx([75.0, 25.0])
    assert body['results'][0]['basis'] == '6h of 8h total'
    assert body['results'][0]['employee_name'] == 'Alice'


def test_calculate_uses_default_service_charge_rate():
    response = client.post('/tips/calculate', json={'total_sales': 1000, 'policy': 'equal', 'staff': STAFF})

    assert response.status_code == 200
    assert response.json()['total_tips'] == 180.0


def test_calculate_with_no_staff_is_a_bad_request():
    response = client.post('/tips/calculate', json={'total_sales': 1000, 'service_charge_rate': 18, 'staff': []})

    assert response.status_code == 400
    assert response.json()['code'] == 'empty_staff'


def test_calculate_with_zero_hours_is_a_bad_request():
    staff = [dict(s, hours_worked=0) for s in STAFF]
    response = client.post('/tips/calculate', json={
        'total_sales': 1000, 'service_charge_rate': 18, 'policy': 'hours', 'staff': staff})

    assert response.status_code == 400
    assert response.json()['code'] == 'zero_basis'


def test_calculate_rejects_out_of_range_rate():
    response = client.post('/tips/calculate', json={'total_sales': 1000, 'service_charge_rate': 120, 'staff': STAFF})

    assert response.status_code == 422


def test_confirm_returns_ledger_records():
    response = client.post('/tips/confirm', json={
        'total_sales': 1000, 'service_charge_rate': 18, 'policy': 'performance', 'staff': STAFF})

    assert response.status_code == 200
    transactions = response.json()['transactions']
    assert [t['amount'] for t in transactions] == [90.0, 90.0]
    assert transactions[0]['notes'] == 'Auto-calculated based on 90% performance score'
    assert transactions[0]['type'] == 'credit'
    assert transactions[0]['source'] == 'automatic'


def test_payroll_estimate():
    response = client.post('/payroll/estimate', json={
        'employees': [{'hourly_wage': 15}, {'hourly_wage': 17}],
        'tax_settings': {'federal_rate': 0.2, 'state_rate': 0.05, 'fica_rate': 0.05},
        'assumed_weekly_hours': 32,
    })

    assert response.status_code == 200
    body = response.json()
    assert body['total_employees'] == 2
    assert body['average_hourly_wage'] == 16
    assert body['estimated_gross_pay'] == pytest.approx(1024)
    assert body['estimated_taxes'] == pytest.approx(307.2)
    assert body['estimated_net_pay'] == pytest.approx(716.8)
    assert body['net_rate'] == pytest.approx(0.7)


def test_payroll_estimate_uses_configured_defaults():
    response = client.post('/payroll/estimate', json={'employees': [{'hourly_wage': 10}]})

    assert response.status_code == 200
    body = response.json()
    assert body['assumed_weekly_hours'] == 32
    assert body['combined_tax_rate'] == pytest.approx(0.3865)
    assert body['estimated_gross_pay'] == pytest.approx(320)


def test_payroll_estimate_errors():
    empty = client.post('/payroll/estimate', json={'employees': []})
    assert empty.status_code == 400
    assert empty.json()['code'] == 'empty_roster'

    no_hours = client.post('/payroll/estimate', json={'employees': [{'hourly_wage': 10}], 'assumed_weekly_hours': 0})
    assert no_hours.status_code == 400
    assert no_hours.json()['code'] == 'invalid_configuration'


def test_validate_punches_endpoint():
    response = client.post('/tiee/validate', json={'punches': [
        {'id': 'p1', 'employee_id': 'e1', 'punch_type': 'IN', 'ts_utc': '2024-01-08T09:00:00Z', 'job_code': 'SERVER'},
        {'id': 'p2', 'employee_id': 'e1', 'punch_type': 'OUT', 'ts_utc': '2024-01-08T09:30:00Z', 'job_code': 'SERVER'},
    ]})

    assert response.status_code == 200
    body = response.json()
    assert body['is_valid'] is False
    assert [f['rule_id'] for f in body['flags']] == ['TIEE-002']
