import io

import pytest
from django.core.management import call_command

pytestmark = pytest.mark.django_db


def test_models_match_migrations(settings):
    # The suite runs with --nomigrations; point the loader back at the real migration modules.
    settings.MIGRATION_MODULES = {}
    out = io.StringIO()
    try:
        call_command('makemigrations', check=True, dry_run=True, interactive=False, stdout=out)
    except SystemExit:
        pytest.fail(f'models have changes without a migration:\n{out.getvalue()}')
