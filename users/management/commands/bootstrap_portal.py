from django.core.management.base import BaseCommand

from users.bootstrap import reconcile_portal


class Command(BaseCommand):
    help = 'Ensures the Coordinator/Student groups and the initial coordinator account exist'

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING('Reconciling roles...'))
        coordinator = reconcile_portal()
        if coordinator:
            self.stdout.write(f"Initial coordinator: {coordinator.username}")
        self.stdout.write(self.style.SUCCESS('Roles reconciled.'))
