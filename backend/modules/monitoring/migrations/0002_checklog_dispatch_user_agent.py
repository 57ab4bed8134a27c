import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("monitoring", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="checklog",
            name="user_agent",
            field=models.CharField(blank=True, max_length=2048),
        ),
        migrations.AddField(
            model_name="checklog",
            name="dispatch",
            field=models.OneToOneField(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="log",
                to="monitoring.dispatch",
            ),
        ),
    ]
