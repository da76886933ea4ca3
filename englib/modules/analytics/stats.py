"""
Click statistics bucketing.

Clicks are stored in UTC; every bucket here is computed in the configured
local offset (KST, UTC+9, by default).
"""
from datetime import datetime, timedelta

PERIODS = ('today', 'week', 'month')
PERIOD_DAYS = {'today': 0, 'week': 7, 'month': 30}

# Sunday first, matching the admin dashboard
WEEKDAY_LABELS = ['일', '월', '화', '수', '목', '금', '토']

ROOT_FOLDER_LABEL = '루트'


def to_local(utc_dt, offset_hours):
    return utc_dt + timedelta(hours=offset_hours)


def to_utc(local_dt, offset_hours):
    return local_dt - timedelta(hours=offset_hours)


def period_start(period, now, offset_hours):
    """UTC start of a reporting period; unknown periods count as 'month'"""
    days = PERIOD_DAYS.get(period, PERIOD_DAYS['month'])
    local_now = to_local(now, offset_hours)
    local_start = (local_now - timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)
    return to_utc(local_start, offset_hours)


def parse_local_date(value, now, offset_hours):
    """Parse YYYY-MM-DD, defaulting to today's local date"""
    if value:
        return datetime.strptime(value, '%Y-%m-%d').date()
    return to_local(now, offset_hours).date()


def day_bounds(local_date, offset_hours):
    """UTC [start, end) of one local calendar day"""
    local_start = datetime(local_date.year, local_date.month, local_date.day)
    start = to_utc(local_start, offset_hours)
    return start, start + timedelta(days=1)


def hourly_counts(click_times, offset_hours):
    counts = [0] * 24
    for clicked_at in click_times:
        counts[to_local(clicked_at, offset_hours).hour] += 1
    return counts


def daily_counts(click_times, offset_hours):
    """[{'date': 'YYYY-MM-DD', 'count': n}] in date order"""
    by_date = {}
    for clicked_at in click_times:
        day = to_local(clicked_at, offset_hours).date().isoformat()
        by_date[day] = by_date.get(day, 0) + 1
    return [{'date': day, 'count': by_date[day]} for day in sorted(by_date)]


def weekday_counts(click_times, offset_hours):
    counts = [0] * 7
    for clicked_at in click_times:
        # datetime.weekday() is Monday=0; shift so Sunday=0
        counts[(to_local(clicked_at, offset_hours).weekday() + 1) % 7] += 1
    return [{'day': WEEKDAY_LABELS[i], 'count': count} for i, count in enumerate(counts)]


def peak_hours(counts):
    """Hours with the highest count; no peaks when nothing was clicked"""
    peak = max(counts) if counts else 0
    if peak == 0:
        return [], 0
    return [hour for hour, count in enumerate(counts) if count == peak], peak


def folder_stats(files, root_path, top_level_folder):
    """
    Aggregate files by their first folder under the textbook root.

    files are dicts with 'dropbox_path' and 'click_count'. Files directly
    under the root are reported as the root bucket. Sorted by clicks.
    """
    stats = {}
    for file in files:
        folder = top_level_folder(file.get('dropbox_path'), root_path)
        if folder is None:
            folder_name = ROOT_FOLDER_LABEL
            folder_path = root_path or '/'
        else:
            folder_name = folder
            folder_path = f"{(root_path or '').rstrip('/')}/{folder}/"

        entry = stats.get(folder_name)
        if entry is None:
            entry = {
                'folderName': folder_name,
                'folderPath': folder_path,
                'files': [],
                'totalClicks': 0,
                'fileCount': 0,
            }
            stats[folder_name] = entry
        entry['files'].append(file)
        entry['totalClicks'] += file.get('click_count') or 0
        entry['fileCount'] += 1

    result = []
    for entry in stats.values():
        entry['avgClicks'] = round(entry['totalClicks'] / entry['fileCount']) if entry['fileCount'] else 0
        result.append(entry)
    result.sort(key=lambda e: e['totalClicks'], reverse=True)
    return result
