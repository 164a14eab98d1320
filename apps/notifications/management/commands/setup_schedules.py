"""
Management command to set up Django-Q2 schedules for notification jobs.

This command creates/updates the scheduled tasks required for:
- Daily digest emails (08:00)
- Daily overdue task reminders (09:00)
- Hourly deadline reminder checks

Usage:
    python manage.py setup_schedules

The command is idempotent - safe to run multiple times.
Existing schedules will be updated if their configuration changes.
"""
from django.core.management.base import BaseCommand
from django_q.models import Schedule

SCHEDULES = [
    {
        'name': 'Daily Digest Email',
        'func': 'apps.notifications.tasks.send_daily_digests',
        'schedule_type': Schedule.CRON,
        'cron': '0 8 * * *',
        'label': 'daily at 08:00',
    },
    {
        'name': 'Overdue Task Check',
        'func': 'apps.notifications.tasks.check_overdue_tasks',
        'schedule_type': Schedule.CRON,
        'cron': '0 9 * * *',
        'label': 'daily at 09:00',
    },
    {
        'name': 'Deadline Reminder Check',
        'func': 'apps.notifications.tasks.check_deadline_reminders',
        'schedule_type': Schedule.HOURLY,
        'cron': None,
        'label': 'hourly',
    },
]


class Command(BaseCommand):
    help = 'Set up Django-Q2 schedules for notification jobs'

    def handle(self, *args, **options):
        self.stdout.write('\nSetting up Django-Q2 schedules...\n')

        created_count = 0
        updated_count = 0

        for entry in SCHEDULES:
            _, created = Schedule.objects.update_or_create(
                name=entry['name'],
                defaults={
                    'func': entry['func'],
                    'schedule_type': entry['schedule_type'],
                    'cron': entry['cron'],
                    'repeats': -1,  # Run forever
                },
            )
            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(f"✓ Created schedule: {entry['name']} ({entry['label']})")
                )
            else:
                updated_count += 1
                self.stdout.write(
                    self.style.WARNING(f"↻ Updated schedule: {entry['name']} ({entry['label']})")
                )

        self.stdout.write('')
        self.stdout.write(
            self.style.SUCCESS(
                f'Done! {created_count} schedule(s) created, {updated_count} schedule(s) updated.'
            )
        )
        self.stdout.write('')
        self.stdout.write(
            self.style.NOTICE(
                'Note: Ensure Django-Q cluster is running: python manage.py qcluster'
            )
        )
        self.stdout.write('')
