"""
iCal export of a player's upcoming matches
"""
from datetime import datetime, timedelta, timezone

from icalendar import Alarm, Calendar, Event

from utils.constants import LOCAL_TZ
from utils.partners import request_datetime

MATCH_DURATION = timedelta(hours=2)


def _new_calendar():
    cal = Calendar()
    cal.add('version', '2.0')
    cal.add('prodid', '-//ShuttleMatch//EN')
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', 'PUBLISH')
    cal.add('X-WR-CALNAME', 'ShuttleMatch Matches')
    cal.add('X-WR-TIMEZONE', 'Asia/Yangon')
    cal.add('X-WR-CALDESC', 'My upcoming badminton matches')
    return cal


def matches_to_ical(requests, courts_by_id, profiles_by_id, user_id, now=None):
    """Build an .ics file with the user's matched and arrived requests.

    Args:
        requests: Partner requests the user is involved in.
        courts_by_id: Court rows keyed by id, for the location.
        profiles_by_id: Profiles keyed by id, for the opponent's name.
        user_id: The player the calendar is for.
        now: Only matches starting after this (aware) time are included.

    Returns:
        bytes: iCal content.
    """
    now = now or datetime.now(timezone.utc)
    cal = _new_calendar()

    for request in requests:
        if request.get('status') not in ('matched', 'arrived'):
            continue
        starts = request_datetime(request)
        if not starts:
            continue
        starts = starts.replace(tzinfo=LOCAL_TZ)
        if starts < now:
            continue

        court = courts_by_id.get(request.get('court_id')) or {}
        if request.get('created_by_user') == user_id:
            opponent_id = request.get('matched_user')
        else:
            opponent_id = request.get('created_by_user')
        opponent = (profiles_by_id.get(opponent_id) or {}).get('name') or 'TBA'

        event = Event()
        event.add('uid', f"{request['id']}-{user_id}@shuttlematch")
        event.add('dtstamp', now)
        event.add('dtstart', starts)
        event.add('dtend', starts + MATCH_DURATION)
        event.add('summary', f"🏸 {(request.get('mode') or 'friendly').capitalize()} match vs {opponent}")
        event.add('location', court.get('address') or court.get('court_name') or 'Mandalay')
        if request.get('phone'):
            event.add('description', f"Contact: {request['phone']}")
        event.add('status', 'CONFIRMED')

        alarm = Alarm()
        alarm.add('action', 'DISPLAY')
        alarm.add('trigger', timedelta(hours=-1))
        alarm.add('description', 'Badminton match in one hour')
        event.add_component(alarm)

        cal.add_component(event)

    return cal.to_ical()
