"""
Tests for the analytics engine (apps.reports.analytics).

Pure functions over in-memory records: no database needed.
"""

from datetime import date, datetime, time, timedelta

from django.test import SimpleTestCase

from apps.reports import analytics
from apps.reports.analytics import TaskSnapshot


def task(**fields):
    fields.setdefault('status', 'not_started')
    return TaskSnapshot.from_obj(fields)


class IsOverdueTests(SimpleTestCase):

    def test_due_date_without_end_time_is_overdue_only_after_end_of_day(self):
        t = task(due_date='2024-01-10')
        self.assertFalse(analytics.is_overdue(t, datetime(2024, 1, 10, 23, 59, 59, 998000)))
        self.assertTrue(analytics.is_overdue(t, datetime(2024, 1, 11, 0, 0, 0)))

    def test_end_time_is_the_deadline(self):
        t = task(due_date='2024-01-10', end_time='17:00')
        self.assertFalse(analytics.is_overdue(t, datetime(2024, 1, 10, 16, 59, 59)))
        self.assertFalse(analytics.is_overdue(t, datetime(2024, 1, 10, 17, 0, 0)))
        self.assertTrue(analytics.is_overdue(t, datetime(2024, 1, 10, 17, 0, 0, 1000)))
        self.assertTrue(analytics.is_overdue(t, datetime(2024, 1, 10, 17, 0, 1)))

    def test_time_component_embedded_in_due_date_is_ignored(self):
        t = task(due_date='2024-01-10T08:00:00Z')
        self.assertFalse(analytics.is_overdue(t, datetime(2024, 1, 10, 12, 0)))

    def test_completed_task_is_never_overdue(self):
        t = task(due_date=date(2020, 1, 1), status='completed')
        self.assertFalse(analytics.is_overdue(t, datetime(2024, 1, 1)))

    def test_task_without_due_date_is_never_overdue(self):
        self.assertFalse(analytics.is_overdue(task(), datetime(2024, 1, 1)))

    def test_malformed_dates_are_not_overdue(self):
        now = datetime(2030, 1, 1)
        self.assertFalse(analytics.is_overdue(task(due_date='not-a-date'), now))
        self.assertFalse(analytics.is_overdue(task(due_date='2024-13-45'), now))
        self.assertFalse(analytics.is_overdue(task(due_date='2024-01-10', end_time='25:99'), now))

    def test_unpadded_iso_timestamps_keep_their_date(self):
        t = task(due_date='2024-1-5T10:00')
        self.assertFalse(analytics.is_overdue(t, datetime(2024, 1, 5, 23, 0)))
        self.assertTrue(analytics.is_overdue(t, datetime(2024, 1, 6, 0, 0)))
        self.assertTrue(analytics.is_overdue(task(due_date='2024-1-5 10:00'), datetime(2024, 1, 6)))

    def test_accepts_plain_dicts_and_python_types(self):
        record = {'status': 'blocked', 'due_date': date(2024, 1, 10), 'end_time': time(9, 30)}
        self.assertTrue(analytics.is_overdue(record, datetime(2024, 1, 10, 9, 31)))

    def test_filter_overdue_keeps_order(self):
        now = datetime(2024, 1, 20)
        tasks = [
            task(id=1, due_date='2024-01-01'),
            task(id=2, due_date='2024-02-01'),
            task(id=3, due_date='2024-01-05'),
        ]
        self.assertEqual([t.id for t in analytics.filter_overdue(tasks, now)], [1, 3])


class EmployeeScoreTests(SimpleTestCase):

    def test_clamped_at_zero(self):
        self.assertEqual(analytics.compute_employee_score(10, 0, 0), 0)

    def test_bonus_capped_and_clamped_at_hundred(self):
        self.assertEqual(analytics.compute_employee_score(0, 0, 50), 100)

    def test_penalties_and_bonus(self):
        # 100 - 15 - 2*5 + 3*2
        self.assertEqual(analytics.compute_employee_score(1, 2, 3), 81)

    def test_week_starts_on_sunday_midnight(self):
        wednesday = datetime(2024, 1, 10, 15, 30)
        self.assertEqual(analytics.week_start(wednesday), datetime(2024, 1, 7, 0, 0))
        sunday = datetime(2024, 1, 7, 0, 5)
        self.assertEqual(analytics.week_start(sunday), datetime(2024, 1, 7, 0, 0))

    def test_employee_summary_counts(self):
        now = datetime(2024, 1, 10, 12, 0)
        tasks = [
            task(status='in_progress', due_date='2024-01-01'),
            task(status='completed', completed_at=datetime(2024, 1, 8, 9, 0), late_completion=True),
            task(status='completed', completed_at=datetime(2024, 1, 2, 9, 0)),
            task(status='not_started', due_date='2024-02-01'),
        ]
        summary = analytics.employee_summary(tasks, now)
        self.assertEqual(summary, {
            'active_tasks': 2,
            'overdue_tasks': 1,
            'late_tasks': 1,
            'completed_this_week': 1,
            'score': 100 - 15 - 5 + 2,
        })


class PriorityStatusAggregationTests(SimpleTestCase):

    def test_empty_input_has_full_shape_and_zero_rate(self):
        result = analytics.aggregate_by_priority_and_status([])
        self.assertEqual(result['total'], 0)
        self.assertEqual(result['completion_rate'], 0)
        self.assertEqual(result['by_priority'], {'low': 0, 'medium': 0, 'high': 0, 'critical': 0})
        self.assertEqual(
            result['by_status'],
            {'not_started': 0, 'in_progress': 0, 'completed': 0, 'blocked': 0},
        )

    def test_unknown_values_are_ignored(self):
        result = analytics.aggregate_by_priority_and_status([
            task(priority='urgent', status='archived'),
            task(priority='high', status='completed'),
        ])
        self.assertEqual(result['total'], 2)
        self.assertNotIn('urgent', result['by_priority'])
        self.assertNotIn('archived', result['by_status'])
        self.assertEqual(result['by_priority']['high'], 1)
        self.assertEqual(result['completion_rate'], 50)

    def test_issue_domain(self):
        issues = [
            {'status': 'resolved', 'priority': 'low'},
            {'status': 'closed', 'priority': 'low'},
            {'status': 'pending_assignment', 'priority': 'critical'},
        ]
        result = analytics.aggregate_by_priority_and_status(
            issues,
            statuses=analytics.ISSUE_STATUSES,
            done_statuses=analytics.ISSUE_DONE_STATUSES,
        )
        self.assertEqual(result['by_status']['pending_assignment'], 1)
        self.assertEqual(result['by_status']['assigned'], 0)
        self.assertEqual(result['completion_rate'], 67)

    def test_percentage_rounds_half_up(self):
        self.assertEqual(analytics.percentage(1, 8), 13)
        self.assertEqual(analytics.percentage(1, 3), 33)
        self.assertEqual(analytics.percentage(5, 0), 0)


class TagAggregationTests(SimpleTestCase):

    def test_task_counts_fully_towards_each_tag(self):
        stats = analytics.aggregate_by_tag([task(tags=['ops', 'finance'], status='completed')])
        self.assertEqual(stats['ops'].completed, 1)
        self.assertEqual(stats['finance'].completed, 1)
        self.assertEqual(stats['ops'].total, 1)

    def test_untagged_tasks_use_sentinel(self):
        stats = analytics.aggregate_by_tag([task(tags=[]), task(tags=None)])
        self.assertEqual(list(stats), [analytics.NO_TAG])
        self.assertEqual(stats[analytics.NO_TAG].total, 2)

    def test_distribution_sorted_by_total_then_name(self):
        stats = analytics.aggregate_by_tag([
            task(tags=['zeta']),
            task(tags=['beta']),
            task(tags=['alpha', 'zeta']),
        ])
        rows = analytics.tag_distribution(stats)
        self.assertEqual([r['tag'] for r in rows], ['zeta', 'alpha', 'beta'])
        self.assertEqual(rows[0]['active'], 2)
        self.assertEqual(rows[0]['completion_rate'], 0)

    def test_average_estimated_hours_ignores_unknown_estimates(self):
        stats = analytics.aggregate_by_tag([
            task(tags=['ops'], estimated_hours='2.00'),
            task(tags=['ops'], estimated_hours=4),
            task(tags=['ops']),
        ])
        self.assertEqual(stats['ops'].avg_estimated_hours, 3.0)

    def test_billing_scenario_is_problematic(self):
        now = datetime(2024, 3, 1, 12, 0)
        tasks = [
            task(tags=['billing'], due_date='2024-02-01'),
            task(tags=['billing'], due_date='2024-02-15'),
            task(tags=['billing'], due_date='2024-04-01'),
        ]
        tasks += [task(tags=['ops'], due_date='2024-05-01') for _ in range(7)]

        stats = analytics.aggregate_by_tag(tasks, now)
        self.assertEqual(stats['billing'].total, 3)
        self.assertEqual(stats['billing'].overdue, 2)

        problems = analytics.problematic_tags(stats)
        self.assertEqual(problems, [{
            'tag': 'billing',
            'overdue_rate': 67,
            'total_tasks': 3,
            'overdue_tasks': 2,
        }])

    def test_small_or_healthy_tags_are_not_problematic(self):
        now = datetime(2024, 3, 1)
        tasks = [
            task(tags=['tiny'], due_date='2024-01-01'),
            task(tags=['tiny'], due_date='2024-01-01'),
        ]
        # exactly 30% overdue is not enough
        tasks += [task(tags=['edge'], due_date='2024-01-01') for _ in range(3)]
        tasks += [task(tags=['edge'], due_date='2025-01-01') for _ in range(7)]
        self.assertEqual(analytics.problematic_tags(analytics.aggregate_by_tag(tasks, now)), [])


class BucketTrendTests(SimpleTestCase):

    def test_empty_input_has_every_day(self):
        now = datetime(2024, 3, 10, 15, 0)
        buckets = analytics.bucket_trend([], 7, now)
        self.assertEqual(len(buckets), 7)
        self.assertEqual(buckets[0]['date'], '2024-03-04')
        self.assertEqual(buckets[-1]['date'], '2024-03-10')
        self.assertTrue(all(b['created'] == 0 and b['completed'] == 0 for b in buckets))

    def test_counts_created_and_completed_on_their_days(self):
        now = datetime(2024, 3, 10, 15, 0)
        tasks = [
            task(created_at='2024-03-09T10:00:00', status='completed',
                 completed_at='2024-03-10T09:00:00'),
            task(created_at=datetime(2024, 3, 10, 8, 0)),
            # completed_at without completed status does not count
            task(created_at='2024-03-01T10:00:00', status='in_progress',
                 completed_at='2024-03-10T09:00:00'),
            task(created_at='garbage'),
        ]
        by_day = {b['date']: b for b in analytics.bucket_trend(tasks, 3, now)}
        self.assertEqual(by_day['2024-03-09'], {'date': '2024-03-09', 'created': 1, 'completed': 0})
        self.assertEqual(by_day['2024-03-10'], {'date': '2024-03-10', 'created': 1, 'completed': 1})

    def test_non_positive_days(self):
        self.assertEqual(analytics.bucket_trend([], 0, datetime(2024, 1, 1)), [])


class InsightTests(SimpleTestCase):

    def test_no_insights_for_quiet_aggregates(self):
        self.assertEqual(analytics.derive_insights({}), [])

    def test_unknown_keys_are_ignored(self):
        insights = analytics.derive_insights({'total_tasks': 1, 'overdue_tasks': 1, 'completion_rate': 0})
        self.assertEqual(len(insights), 1)
        self.assertIn('1 overdue', insights[0])

    def test_rules_fire_in_order(self):
        insights = analytics.derive_insights({
            'total_tasks': 10,
            'overdue_tasks': 2,
            'recurring_tasks': 6,
            'completed_this_week': 4,
            'created_this_week': 1,
            'critical_count': 6,
            'problematic_tags': [{'tag': 'billing', 'overdue_rate': 67}],
        })
        self.assertEqual(len(insights), 5)
        self.assertIn('2 overdue', insights[0])
        self.assertIn('billing', insights[1])
        self.assertIn('67%', insights[1])
        self.assertIn('recurring', insights[2])
        self.assertIn('Positive trend', insights[3])
        self.assertIn('critical', insights[4])

    def test_each_rule_is_guarded(self):
        insights = analytics.derive_insights({
            'total_tasks': 10,
            'recurring_tasks': 5,
            'completed_this_week': 2,
            'created_this_week': 2,
            'critical_count': 5,
        })
        self.assertEqual(insights, [])


class IssueAndTeamMetricsTests(SimpleTestCase):

    def test_issue_resolution_metrics(self):
        created = datetime(2024, 1, 1, 0, 0)
        issues = [
            {'status': 'resolved', 'created_at': created, 'resolved_at': created + timedelta(hours=10)},
            {'status': 'closed', 'created_at': created, 'resolved_at': created + timedelta(hours=5)},
            {'status': 'pending_assignment'},
            {'status': 'in_progress'},
        ]
        self.assertEqual(analytics.issue_resolution_metrics(issues), {
            'total': 4,
            'resolved': 2,
            'pending': 1,
            'assigned': 1,
            'resolution_rate': 50,
            'avg_resolution_time_hours': 8,
        })

    def test_issue_metrics_empty(self):
        result = analytics.issue_resolution_metrics([])
        self.assertEqual(result['resolution_rate'], 0)
        self.assertEqual(result['avg_resolution_time_hours'], 0)

    def test_workload_entry(self):
        entry = analytics.workload_entry([
            task(status='completed'), task(status='in_progress'), task(status='blocked'),
        ])
        self.assertEqual(entry, {
            'total_tasks': 3,
            'completed_tasks': 1,
            'in_progress_tasks': 1,
            'active_tasks': 2,
            'completion_rate': 33,
        })

    def test_recommendations(self):
        entries = [
            {'name': 'Busy Bee', 'active_tasks': 11, 'overdue_tasks': 0, 'score': 100},
            {'name': 'Idle Ian', 'active_tasks': 1, 'overdue_tasks': 2, 'score': 60},
            {'name': 'Steady Sue', 'active_tasks': 5, 'overdue_tasks': 0, 'score': None},
        ]
        recs = analytics.derive_recommendations(entries)
        self.assertEqual([r['severity'] for r in recs], ['warning', 'info', 'critical', 'warning'])
        self.assertEqual(recs[0]['affected_users'], ['Busy Bee'])
        self.assertEqual(recs[2]['affected_users'], ['Idle Ian (2 overdue)'])
        self.assertEqual(recs[3]['affected_users'], ['Idle Ian'])

    def test_no_recommendations_for_balanced_team(self):
        entries = [{'name': 'A', 'active_tasks': 4, 'overdue_tasks': 0, 'score': 90}]
        self.assertEqual(analytics.derive_recommendations(entries), [])


class OverviewTests(SimpleTestCase):

    def test_build_overview(self):
        now = datetime(2024, 3, 10, 12, 0)
        tasks = [
            task(status='completed', created_at='2024-03-08T09:00:00',
                 completed_at='2024-03-09T09:00:00', tags=['ops'], priority='critical'),
            task(status='in_progress', created_at='2024-02-01T09:00:00',
                 due_date='2024-03-01', tags=['ops'], is_recurring=True),
            task(status='not_started', created_at='2024-02-01T09:00:00'),
        ]
        overview = analytics.build_overview(tasks, now)

        self.assertEqual(overview['summary'], {
            'total_tasks': 3,
            'completed_tasks': 1,
            'active_tasks': 2,
            'overdue_tasks': 1,
            'recurring_tasks': 1,
            'completion_rate': 33,
            'recurring_rate': 33,
        })
        self.assertEqual(overview['weekly'], {
            'completed_this_week': 1,
            'created_this_week': 1,
            'productivity': 100,
        })
        self.assertEqual(overview['distributions']['by_priority']['critical'], 1)
        self.assertEqual(overview['distributions']['by_tag'][0]['tag'], 'ops')
        self.assertIn('1 overdue task(s) should be handled first.', overview['insights'])

    def test_empty_overview(self):
        overview = analytics.build_overview([], datetime(2024, 1, 1))
        self.assertEqual(overview['summary']['completion_rate'], 0)
        self.assertEqual(overview['weekly']['productivity'], 0)
        self.assertEqual(overview['insights'], [])
