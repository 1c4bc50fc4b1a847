from django.core.management.base import BaseCommand

from restaurant.data_transfer import seed_demo_data


class Command(BaseCommand):
    help = "Insert the demo menu, tables, inventory, customers and settings."

    def handle(self, *args, **options):
        result = seed_demo_data()
        style = self.style.SUCCESS if result["created"] else self.style.WARNING
        self.stdout.write(style(result["message"]))
