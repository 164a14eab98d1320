"""
Analytics engine for dashboards and reports.

Pure, single-pass folds over task and issue rows that are already in memory.
Nothing in this module touches the database: apps.reports.services fetches
and scopes the rows, this module only aggregates them.

Functions:
- is_overdue: the one overdue predicate used across the project
- compute_employee_score: bounded 0-100 per-employee score
- aggregate_by_priority_and_status: fixed-shape histograms + completion rate
- aggregate_by_tag / tag_distribution / problematic_tags: tag statistics
- bucket_trend: daily created/completed series without gaps
- derive_insights / derive_recommendations: human-readable hints
- issue_resolution_metrics, workload_entry, employee_summary, build_overview

Records may be model instances, dict rows (``QuerySet.values()``) or the
snapshot dataclasses below. Malformed dates never raise: the record is
treated as not overdue and left out of date buckets.
"""

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime, time, timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime, parse_time

logger = logging.getLogger(__name__)


# =============================================================================
# Domain constants
# =============================================================================

PRIORITIES = ('low', 'medium', 'high', 'critical')
TASK_STATUSES = ('not_started', 'in_progress', 'completed', 'blocked')
ISSUE_STATUSES = ('pending_assignment', 'assigned', 'in_progress', 'resolved', 'closed')

COMPLETED = 'completed'
ISSUE_DONE_STATUSES = ('resolved', 'closed')
ISSUE_OPEN_STATUSES = ('assigned', 'in_progress')

NO_TAG = 'Untagged'

# Problematic tags: enough samples and more than 30% overdue
PROBLEM_TAG_MIN_TASKS = 3
PROBLEM_TAG_OVERDUE_RATIO = 0.30

# Employee score
SCORE_BASE = 100
OVERDUE_PENALTY = 15
LATE_PENALTY = 5
WEEKLY_BONUS_PER_TASK = 2
WEEKLY_BONUS_CAP = 20

# Recommendation thresholds
OVERLOAD_ACTIVE_TASKS = 10
UNDERUTILIZED_ACTIVE_TASKS = 2
LOW_SCORE = 70

# Insight thresholds
RECURRING_SHARE = 0.5
CRITICAL_TASKS_LIMIT = 5

END_OF_DAY = time(23, 59, 59, 999000)


# =============================================================================
# Input records
# =============================================================================

def _field(record, name, default=None):
    """Read ``name`` from a dict row or an attribute-bearing object."""
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


@dataclass
class TaskSnapshot:
    """
    Read-only view of a task as the engine needs it.

    Only ``status`` is required. ``due_date`` and ``end_time`` are optional;
    a task without ``due_date`` is never overdue.
    """

    status: str
    id: object = None
    title: str = ''
    priority: str = 'medium'
    due_date: object = None
    end_time: object = None
    completed_at: object = None
    created_at: object = None
    late_completion: bool = False
    tags: list = field(default_factory=list)
    estimated_hours: object = None
    is_recurring: bool = False
    assigned_to_id: object = None
    created_by_id: object = None

    @classmethod
    def from_obj(cls, obj):
        """Build a snapshot from a model instance, a dict row or a snapshot."""
        if isinstance(obj, cls):
            return obj

        values = {f.name: _field(obj, f.name) for f in fields(cls)}

        # Rows coming from outside the ORM name foreign keys without "_id"
        if isinstance(obj, dict):
            if values['assigned_to_id'] is None:
                values['assigned_to_id'] = obj.get('assigned_to')
            if values['created_by_id'] is None:
                values['created_by_id'] = obj.get('created_by')

        values['status'] = values['status'] or TASK_STATUSES[0]
        values['priority'] = values['priority'] or 'medium'
        values['title'] = values['title'] or ''
        values['tags'] = list(values['tags'] or [])
        values['late_completion'] = bool(values['late_completion'])
        values['is_recurring'] = bool(values['is_recurring'])
        return cls(**values)


@dataclass
class IssueSnapshot:
    """Read-only view of an issue as the engine needs it."""

    status: str
    id: object = None
    title: str = ''
    priority: str = 'medium'
    created_at: object = None
    resolved_at: object = None

    @classmethod
    def from_obj(cls, obj):
        if isinstance(obj, cls):
            return obj
        values = {f.name: _field(obj, f.name) for f in fields(cls)}
        values['status'] = values['status'] or ISSUE_STATUSES[0]
        values['priority'] = values['priority'] or 'medium'
        values['title'] = values['title'] or ''
        return cls(**values)


# =============================================================================
# Date helpers
# =============================================================================

def _wall_clock(value):
    """Return ``value`` as a naive local datetime."""
    if timezone.is_aware(value):
        return timezone.localtime(value).replace(tzinfo=None)
    return value


def _as_date(value):
    """Calendar-date portion of a date, datetime or ISO string, as written."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_date(value.strip().replace(' ', 'T').split('T')[0])
        except ValueError:
            parsed = None
        if parsed is None:
            logger.debug('Unparseable date %r', value)
        return parsed
    return None


def _as_time(value):
    """Parse a ``HH:MM[:SS]`` wall-clock value."""
    if value in (None, ''):
        return None
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    if isinstance(value, str):
        try:
            parsed = parse_time(value.strip())
        except ValueError:
            parsed = None
        if parsed is None:
            logger.debug('Unparseable time %r', value)
            return None
        return parsed.replace(tzinfo=None)
    return None


def _as_datetime(value):
    """Parse a timestamp into a naive local datetime."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return _wall_clock(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value.strip())
        except ValueError:
            parsed = None
        if parsed is not None:
            return _wall_clock(parsed)
        day = _as_date(value)
        if day is not None:
            return datetime.combine(day, time.min)
    return None


def _local_date(value):
    moment = _as_datetime(value)
    return moment.date() if moment is not None else None


def _as_number(value):
    if value in (None, ''):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def percentage(part, whole):
    """
    Whole-number percentage rounded half up.

    Returns 0 when ``whole`` is 0 so rates never become NaN or infinite.
    """
    if not whole:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


# =============================================================================
# Overdue classification
# =============================================================================

def is_overdue(task, now=None):
    """
    Check if a task is past its deadline and not completed.

    The deadline is ``due_date`` combined with ``end_time`` when present,
    otherwise the last instant of ``due_date``. Both are compared as local
    wall-clock values; an aware ``now`` is converted to local time first.

    Args:
        task: model instance, dict row or TaskSnapshot
        now: reference instant (defaults to timezone.now())

    Returns:
        bool
    """
    due = _field(task, 'due_date')
    if not due or _field(task, 'status') == COMPLETED:
        return False

    due_day = _as_date(due)
    if due_day is None:
        return False

    end = _field(task, 'end_time')
    if end:
        end_time = _as_time(end)
        if end_time is None:
            return False
        deadline = datetime.combine(due_day, end_time)
    else:
        deadline = datetime.combine(due_day, END_OF_DAY)

    if now is None:
        now = timezone.now()
    return _wall_clock(now) > deadline


def filter_overdue(tasks, now):
    """Return the overdue subset of ``tasks``, preserving order."""
    return [task for task in tasks if is_overdue(task, now)]


# =============================================================================
# Employee score
# =============================================================================

def compute_employee_score(overdue_count, late_count, completed_this_week_count):
    """
    Score an employee from live counts.

    100, minus 15 per overdue task and 5 per late completion, plus 2 per task
    completed this week (bonus capped at 20), clamped to [0, 100].
    """
    score = SCORE_BASE
    score -= overdue_count * OVERDUE_PENALTY
    score -= late_count * LATE_PENALTY
    score += min(completed_this_week_count * WEEKLY_BONUS_PER_TASK, WEEKLY_BONUS_CAP)
    return int(max(0, min(100, score)))


def week_start(now):
    """Most recent Sunday at local midnight, as a naive local datetime."""
    local_now = _wall_clock(now)
    days_since_sunday = (local_now.weekday() + 1) % 7
    return datetime.combine(local_now.date() - timedelta(days=days_since_sunday), time.min)


def count_completed_since(tasks, since):
    """Count completed tasks whose completed_at is at or after ``since``."""
    since = _wall_clock(since)
    count = 0
    for task in tasks:
        if _field(task, 'status') != COMPLETED:
            continue
        completed_at = _as_datetime(_field(task, 'completed_at'))
        if completed_at is not None and completed_at >= since:
            count += 1
    return count


def count_created_since(tasks, since):
    since = _wall_clock(since)
    count = 0
    for task in tasks:
        created_at = _as_datetime(_field(task, 'created_at'))
        if created_at is not None and created_at >= since:
            count += 1
    return count


# =============================================================================
# Priority / status histograms
# =============================================================================

def aggregate_by_priority_and_status(items, statuses=TASK_STATUSES, done_statuses=(COMPLETED,)):
    """
    Build fixed-shape priority and status histograms.

    Every domain value appears in the output, even with a zero count; values
    outside the domain are ignored.

    Args:
        items: tasks or issues
        statuses: status domain (TASK_STATUSES or ISSUE_STATUSES)
        done_statuses: statuses counted as done for the completion rate

    Returns:
        dict with total, by_priority, by_status and completion_rate
    """
    by_priority = dict.fromkeys(PRIORITIES, 0)
    by_status = dict.fromkeys(statuses, 0)
    total = 0
    done = 0

    for item in items:
        total += 1
        priority = _field(item, 'priority')
        if priority in by_priority:
            by_priority[priority] += 1
        status = _field(item, 'status')
        if status in by_status:
            by_status[status] += 1
        if status in done_statuses:
            done += 1

    return {
        'total': total,
        'by_priority': by_priority,
        'by_status': by_status,
        'completion_rate': percentage(done, total),
    }


# =============================================================================
# Tag aggregation
# =============================================================================

@dataclass
class TagStats:
    total: int = 0
    completed: int = 0
    overdue: int = 0
    estimated_hours_total: float = 0.0
    estimated_hours_count: int = 0

    @property
    def active(self):
        return self.total - self.completed

    @property
    def completion_rate(self):
        return percentage(self.completed, self.total)

    @property
    def overdue_rate(self):
        return percentage(self.overdue, self.total)

    @property
    def avg_estimated_hours(self):
        if not self.estimated_hours_count:
            return None
        return round(self.estimated_hours_total / self.estimated_hours_count, 1)

    def as_dict(self, tag):
        return {
            'tag': tag,
            'total': self.total,
            'completed': self.completed,
            'active': self.active,
            'overdue': self.overdue,
            'completion_rate': self.completion_rate,
            'overdue_rate': self.overdue_rate,
            'avg_estimated_hours': self.avg_estimated_hours,
        }


def task_tags(task):
    """Tags of a task, de-duplicated, or [NO_TAG] when it has none."""
    raw = _field(task, 'tags') or []
    if isinstance(raw, str):
        raw = [raw]
    cleaned = [str(tag).strip() for tag in raw if tag is not None and str(tag).strip()]
    return list(dict.fromkeys(cleaned)) or [NO_TAG]


def aggregate_by_tag(tasks, now=None):
    """
    Aggregate tasks by tag.

    A task with tags [A, B] counts fully towards both A and B. Overdue counts
    are only collected when ``now`` is given.

    Returns:
        dict of tag -> TagStats, in first-seen order
    """
    stats = {}
    for task in tasks:
        completed = _field(task, 'status') == COMPLETED
        overdue = now is not None and is_overdue(task, now)
        hours = _as_number(_field(task, 'estimated_hours'))

        for tag in task_tags(task):
            entry = stats.get(tag)
            if entry is None:
                entry = stats[tag] = TagStats()
            entry.total += 1
            if completed:
                entry.completed += 1
            if overdue:
                entry.overdue += 1
            if hours is not None:
                entry.estimated_hours_total += hours
                entry.estimated_hours_count += 1
    return stats


def tag_distribution(stats, limit=None):
    """Tag rows sorted by total (descending), ties by tag name."""
    rows = [entry.as_dict(tag) for tag, entry in stats.items()]
    rows.sort(key=lambda row: (-row['total'], row['tag']))
    if limit is not None:
        rows = rows[:limit]
    return rows


def problematic_tags(stats):
    """
    Tags with at least 3 tasks of which more than 30% are overdue.

    Sorted by overdue rate (descending), ties by tag name.
    """
    problems = []
    for tag, entry in stats.items():
        if entry.total < PROBLEM_TAG_MIN_TASKS:
            continue
        if entry.overdue / entry.total <= PROBLEM_TAG_OVERDUE_RATIO:
            continue
        problems.append({
            'tag': tag,
            'overdue_rate': entry.overdue_rate,
            'total_tasks': entry.total,
            'overdue_tasks': entry.overdue,
        })
    problems.sort(key=lambda row: (-row['overdue_rate'], row['tag']))
    return problems


# =============================================================================
# Trend bucketing
# =============================================================================

def bucket_trend(tasks, days, now):
    """
    Daily created/completed counts for the ``days`` days ending at ``now``.

    Every day is present, zero counts included. A task counts as completed
    on the day of its completed_at, and only if its status is completed.

    Returns:
        list of {'date': 'YYYY-MM-DD', 'created': int, 'completed': int}
    """
    if days <= 0:
        return []

    end_day = _wall_clock(now).date()
    start_day = end_day - timedelta(days=days - 1)
    buckets = {}
    for offset in range(days):
        buckets[start_day + timedelta(days=offset)] = {'created': 0, 'completed': 0}

    for task in tasks:
        created_day = _local_date(_field(task, 'created_at'))
        if created_day in buckets:
            buckets[created_day]['created'] += 1

        if _field(task, 'status') != COMPLETED:
            continue
        completed_day = _local_date(_field(task, 'completed_at'))
        if completed_day in buckets:
            buckets[completed_day]['completed'] += 1

    return [
        {'date': day.isoformat(), 'created': counts['created'], 'completed': counts['completed']}
        for day, counts in buckets.items()
    ]


# =============================================================================
# Insights
# =============================================================================

@dataclass
class OverviewAggregates:
    total_tasks: int = 0
    overdue_tasks: int = 0
    recurring_tasks: int = 0
    completed_this_week: int = 0
    created_this_week: int = 0
    critical_count: int = 0
    problematic_tags: list = field(default_factory=list)


def overdue_insight(aggregates):
    if aggregates.overdue_tasks > 0:
        return f'{aggregates.overdue_tasks} overdue task(s) should be handled first.'
    return None


def problem_tag_insight(aggregates):
    if aggregates.problematic_tags:
        worst = aggregates.problematic_tags[0]
        return (
            f'{worst["overdue_rate"]}% of tasks tagged "{worst["tag"]}" are overdue. '
            f'This area may need support.'
        )
    return None


def automation_insight(aggregates):
    if aggregates.recurring_tasks > aggregates.total_tasks * RECURRING_SHARE:
        share = percentage(aggregates.recurring_tasks, aggregates.total_tasks)
        return f'{share}% of tasks are recurring. Consider automating them.'
    return None


def trend_insight(aggregates):
    if aggregates.completed_this_week > aggregates.created_this_week:
        return (
            f'{aggregates.completed_this_week} tasks completed and '
            f'{aggregates.created_this_week} created this week. Positive trend!'
        )
    return None


def critical_insight(aggregates):
    if aggregates.critical_count > CRITICAL_TASKS_LIMIT:
        return f'{aggregates.critical_count} critical-priority tasks. Resource planning may be needed.'
    return None


INSIGHT_RULES = (
    overdue_insight,
    problem_tag_insight,
    automation_insight,
    trend_insight,
    critical_insight,
)


def derive_insights(aggregates):
    """
    Evaluate every insight rule in order; each adds at most one line.

    Args:
        aggregates: OverviewAggregates or a dict with the same keys
    """
    if isinstance(aggregates, dict):
        known = {f.name for f in fields(OverviewAggregates)}
        aggregates = OverviewAggregates(**{k: v for k, v in aggregates.items() if k in known})

    insights = []
    for rule in INSIGHT_RULES:
        message = rule(aggregates)
        if message:
            insights.append(message)
    return insights


# =============================================================================
# Issues, workload, employees
# =============================================================================

def issue_resolution_metrics(issues):
    """Resolution counts, rate and average resolution time in hours."""
    total = resolved = pending = assigned = 0
    durations = []

    for issue in issues:
        total += 1
        status = _field(issue, 'status')
        if status in ISSUE_DONE_STATUSES:
            resolved += 1
            created_at = _as_datetime(_field(issue, 'created_at'))
            resolved_at = _as_datetime(_field(issue, 'resolved_at'))
            if created_at is not None and resolved_at is not None:
                durations.append((resolved_at - created_at).total_seconds())
        elif status == 'pending_assignment':
            pending += 1
        elif status in ISSUE_OPEN_STATUSES:
            assigned += 1

    avg_hours = 0
    if durations:
        avg_hours = int(math.floor(sum(durations) / len(durations) / 3600 + 0.5))

    return {
        'total': total,
        'resolved': resolved,
        'pending': pending,
        'assigned': assigned,
        'resolution_rate': percentage(resolved, total),
        'avg_resolution_time_hours': avg_hours,
    }


def workload_entry(tasks):
    """Task counts for one user's assigned tasks."""
    total = completed = in_progress = 0
    for task in tasks:
        total += 1
        status = _field(task, 'status')
        if status == COMPLETED:
            completed += 1
        elif status == 'in_progress':
            in_progress += 1
    return {
        'total_tasks': total,
        'completed_tasks': completed,
        'in_progress_tasks': in_progress,
        'active_tasks': total - completed,
        'completion_rate': percentage(completed, total),
    }


def employee_summary(tasks, now):
    """Live counts and score for one user's assigned tasks."""
    tasks = list(tasks)
    active = sum(1 for task in tasks if _field(task, 'status') != COMPLETED)
    overdue = len(filter_overdue(tasks, now))
    late = sum(1 for task in tasks if _field(task, 'late_completion'))
    completed_this_week = count_completed_since(tasks, week_start(now))
    return {
        'active_tasks': active,
        'overdue_tasks': overdue,
        'late_tasks': late,
        'completed_this_week': completed_this_week,
        'score': compute_employee_score(overdue, late, completed_this_week),
    }


def derive_recommendations(entries):
    """
    Workload and performance recommendations.

    Args:
        entries: dicts with name, active_tasks, overdue_tasks and score

    Returns:
        list of dicts with type, severity, title, description, affected_users
    """
    recommendations = []

    overloaded = [e for e in entries if e['active_tasks'] > OVERLOAD_ACTIVE_TASKS]
    if overloaded:
        recommendations.append({
            'type': 'workload',
            'severity': 'warning',
            'title': 'Heavy workload detected',
            'description': (
                f'{len(overloaded)} employee(s) have more than {OVERLOAD_ACTIVE_TASKS} '
                f'active tasks. Consider rebalancing the work.'
            ),
            'affected_users': [e['name'] for e in overloaded],
        })

    underutilized = [e for e in entries if e['active_tasks'] < UNDERUTILIZED_ACTIVE_TASKS]
    if underutilized:
        recommendations.append({
            'type': 'workload',
            'severity': 'info',
            'title': 'Light workload',
            'description': (
                f'{len(underutilized)} employee(s) have fewer than {UNDERUTILIZED_ACTIVE_TASKS} '
                f'active tasks. New work can be assigned to them.'
            ),
            'affected_users': [e['name'] for e in underutilized],
        })

    with_overdue = [e for e in entries if e['overdue_tasks'] > 0]
    if with_overdue:
        recommendations.append({
            'type': 'performance',
            'severity': 'critical',
            'title': 'Overdue tasks',
            'description': (
                f'{len(with_overdue)} employee(s) have overdue tasks. '
                f'Immediate attention may be required.'
            ),
            'affected_users': [f"{e['name']} ({e['overdue_tasks']} overdue)" for e in with_overdue],
        })

    low_scores = [e for e in entries if e.get('score') is not None and e['score'] < LOW_SCORE]
    if low_scores:
        recommendations.append({
            'type': 'performance',
            'severity': 'warning',
            'title': 'Low performance score',
            'description': f'{len(low_scores)} employee(s) have a performance score below {LOW_SCORE}.',
            'affected_users': [e['name'] for e in low_scores],
        })

    return recommendations


# =============================================================================
# Overview
# =============================================================================

def build_overview(tasks, now):
    """
    Summary, weekly figures, distributions, problematic tags and insights.

    "This week" is the rolling 7 days before ``now``.
    """
    tasks = list(tasks)
    week_ago = _wall_clock(now) - timedelta(days=7)

    total = len(tasks)
    completed = sum(1 for task in tasks if _field(task, 'status') == COMPLETED)
    overdue = len(filter_overdue(tasks, now))
    recurring = sum(1 for task in tasks if _field(task, 'is_recurring'))
    completed_this_week = count_completed_since(tasks, week_ago)
    created_this_week = count_created_since(tasks, week_ago)

    histogram = aggregate_by_priority_and_status(tasks)
    stats = aggregate_by_tag(tasks, now)
    problems = problematic_tags(stats)

    insights = derive_insights(OverviewAggregates(
        total_tasks=total,
        overdue_tasks=overdue,
        recurring_tasks=recurring,
        completed_this_week=completed_this_week,
        created_this_week=created_this_week,
        critical_count=histogram['by_priority']['critical'],
        problematic_tags=problems,
    ))

    return {
        'summary': {
            'total_tasks': total,
            'completed_tasks': completed,
            'active_tasks': total - completed,
            'overdue_tasks': overdue,
            'recurring_tasks': recurring,
            'completion_rate': percentage(completed, total),
            'recurring_rate': percentage(recurring, total),
        },
        'weekly': {
            'completed_this_week': completed_this_week,
            'created_this_week': created_this_week,
            'productivity': percentage(completed_this_week, created_this_week),
        },
        'distributions': {
            'by_priority': histogram['by_priority'],
            'by_tag': tag_distribution(stats, limit=10),
        },
        'problematic_tags': problems,
        'insights': insights,
    }
