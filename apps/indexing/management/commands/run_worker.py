"""
Django management command to run the processing worker.

Usage:
    python manage.py run_worker [--once]
"""
from django.core.management.base import BaseCommand

from apps.indexing.worker import ProcessingWorker


class Command(BaseCommand):
    help = 'Run the document processing worker'

    def add_arguments(self, parser):
        parser.add_argument(
            '--once',
            action='store_true',
            help='Process at most one job and exit',
        )

    def handle(self, *args, **options):
        worker = ProcessingWorker()

        if options['once']:
            self.stdout.write('Running worker once...')
            if worker.run_once():
                self.stdout.write(self.style.SUCCESS('Processed one job'))
            else:
                self.stdout.write('No jobs queued')
        else:
            self.stdout.write('Starting worker loop...')
            worker.run()
