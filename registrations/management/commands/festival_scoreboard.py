from __future__ import annotations

from django.core.management.base import BaseCommand

from registrations import services


class Command(BaseCommand):
    help = "Print festival points per academic year with played, placing and DNA counts."

    def handle(self, *args, **options):
        rows = services.scoreboard()
        width = max(len(row["label"]) for row in rows)
        for rank, row in enumerate(rows, start=1):
            self.stdout.write(
                f"{rank}. {row['label']:<{width}}  "
                f"P {row['played']:>3}  1st {row['won']:>3}  2nd {row['second']:>3}  "
                f"3rd {row['third']:>3}  DNA {row['dna']:>3}  {row['total_points']:>5}"
            )
