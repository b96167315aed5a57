from django.db import migrations

ROLE_NAMES = ['Admin', 'Administrator', 'Registered']


def seed_roles(apps, schema_editor):
    Role = apps.get_model('consultancy_app', 'Role')
    for name in ROLE_NAMES:
        Role.objects.get_or_create(name=name)


def remove_roles(apps, schema_editor):
    Role = apps.get_model('consultancy_app', 'Role')
    Role.objects.filter(name__in=ROLE_NAMES, users__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('consultancy_app', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_roles, remove_roles),
    ]
