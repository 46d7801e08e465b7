"""
Hierarchy — Management Command: seed_hierarchy

Loads the original hierarchy and the expatriate regions from a JSON
file. New expatriate regions get their four sector national levels.

Usage::

    python manage.py seed_hierarchy --file hierarchy.json

Expected shape::

    {
      "national_levels": [
        {"name": "National", "code": "NATIONAL", "regions": [
          {"name": "North", "code": "R-N", "localities": [
            {"name": "Town", "admin_units": [
              {"name": "Unit 1", "districts": ["District A", "District B"]}
            ]}
          ]}
        ]}
      ],
      "expatriate_regions": [{"name": "Gulf", "code": "EXPAT-1"}]
    }

Idempotent: nodes are matched on code when given, otherwise on name
and parent.

@file hierarchy/management/commands/seed_hierarchy.py
"""

import json
from collections import Counter

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from hierarchy.branches import Branch, BRANCH_LEVELS, NATIONAL_LEVEL
from hierarchy.models import ExpatriateRegion
from hierarchy.services import ExpatriateRegionService
from hierarchy.validators import normalize_code

CHILD_KEYS = {
    'national_level': 'regions',
    'region': 'localities',
    'locality': 'admin_units',
    'admin_unit': 'districts',
}


class Command(BaseCommand):
    help = 'Seed the organisational hierarchy from a JSON file.'

    def add_arguments(self, parser):
        parser.add_argument('--file', type=str, required=True, help='Path to the JSON file.')

    def handle(self, *args, **options):
        try:
            with open(options['file'], 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise CommandError(f'Cannot read {options["file"]}: {exc}')

        if not isinstance(data, dict):
            raise CommandError('Expected a JSON object with "national_levels" and/or "expatriate_regions".')

        counter = Counter()
        with transaction.atomic():
            for entry in data.get('national_levels', []):
                self._seed_node(NATIONAL_LEVEL, entry, None, counter)
            for entry in data.get('expatriate_regions', []):
                self._seed_expatriate_region(entry, counter)

        summary = ', '.join(
            f'{level.model._meta.verbose_name_plural}: {counter[level.key]}'
            for level in reversed(BRANCH_LEVELS[Branch.ORIGINAL])
        )
        self.stdout.write(self.style.SUCCESS(
            f'Done. {summary}, expatriate regions: {counter["expatriate_region"]}, '
            f'sectors created: {counter["sector_national_level"]}'
        ))

    @staticmethod
    def _entry(entry):
        if isinstance(entry, str):
            return {'name': entry}
        return entry

    def _seed_node(self, level, entry, parent, counter):
        entry = self._entry(entry)
        name = (entry.get('name') or '').strip()
        if not name:
            return

        code = normalize_code(entry.get('code'))
        defaults = {'name': name, 'description': entry.get('description', '')}
        lookup = {}
        if parent is not None:
            if code:
                defaults[level.parent.key] = parent
            else:
                lookup[level.parent.key] = parent
        if code:
            lookup['code'] = code
        else:
            lookup['name'] = name
            defaults.pop('name')

        node, _ = level.model.objects.get_or_create(**lookup, defaults=defaults)
        counter[level.key] += 1

        child_key = CHILD_KEYS.get(level.key)
        if child_key:
            child_level = level.descendants[0]
            for child_entry in entry.get(child_key, []):
                self._seed_node(child_level, child_entry, node, counter)

    def _seed_expatriate_region(self, entry, counter):
        entry = self._entry(entry)
        name = (entry.get('name') or '').strip()
        if not name:
            return

        code = normalize_code(entry.get('code'))
        lookup = {'code': code} if code else {'name': name}
        region, created = ExpatriateRegion.objects.get_or_create(
            **lookup,
            defaults={'name': name, 'description': entry.get('description', '')},
        )
        counter['expatriate_region'] += 1
        if created:
            counter['sector_national_level'] += len(ExpatriateRegionService.create_sectors(region))
