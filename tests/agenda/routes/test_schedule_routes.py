from agenda.models.schedule import WorkSchedule

TUESDAY = '2026-01-06'


def _headers(api) -> dict:
    return {'X-Tenant-ID': api.ids.slug}


def _week(start: str = '09:00', end: str = '13:00') -> list[dict]:
    return [
        {
            'dayOfWeek': day,
            'isWorkDay': day in (2, 4),
            'startTime': start if day in (2, 4) else None,
            'endTime': end if day in (2, 4) else None,
        }
        for day in range(7)
    ]


def test_get_schedule_lists_all_seven_days(api) -> None:
    response = api.client.get(f'/employees/{api.ids.employee_id}/schedule', headers=_headers(api))

    assert response.status_code == 200
    days = response.json()
    assert [day['dayOfWeek'] for day in days] == list(range(7))
    assert days[0]['isWorkDay'] is False
    assert days[2] == {'dayOfWeek': 2, 'isWorkDay': True, 'startTime': '08:00:00', 'endTime': '19:00:00'}


def test_put_schedule_replaces_the_week_in_place(api) -> None:
    response = api.client.put(
        f'/employees/{api.ids.employee_id}/schedule',
        json={'days': _week()},
        headers=_headers(api),
    )

    assert response.status_code == 200, response.text
    assert [day['isWorkDay'] for day in response.json()] == [False, False, True, False, True, False, False]

    slots = api.client.get(
        '/slots',
        params={'employeeId': api.ids.employee_id, 'serviceId': api.ids.service_id, 'date': TUESDAY},
        headers=_headers(api),
    ).json()
    assert [slot['time'] for slot in slots] == [
        '09:00', '09:30', '10:00', '10:30', '11:00', '11:30', '12:00', '12:30',
    ]

    db = api.session_factory()
    try:
        assert db.query(WorkSchedule).filter(WorkSchedule.employee_id == api.ids.employee_id).count() == 7
    finally:
        db.close()


def test_put_schedule_rejects_incomplete_or_inverted_weeks(api) -> None:
    url = f'/employees/{api.ids.employee_id}/schedule'

    incomplete = api.client.put(url, json={'days': _week()[:6]}, headers=_headers(api))
    inverted = api.client.put(url, json={'days': _week(start='13:00', end='09:00')}, headers=_headers(api))
    duplicated = api.client.put(url, json={'days': _week()[:6] + [_week()[0]]}, headers=_headers(api))

    assert incomplete.status_code == 422
    assert inverted.status_code == 422
    assert duplicated.status_code == 422


def test_schedule_of_unknown_employee_is_not_found(api) -> None:
    response = api.client.get('/employees/9999/schedule', headers=_headers(api))

    assert response.status_code == 404
    assert response.json()['detail']['code'] == 'NOT_FOUND'
