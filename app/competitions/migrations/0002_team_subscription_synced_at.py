from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("competitions", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="team",
            name="subscription_synced_at",
            field=models.DateTimeField(
                blank=True,
                help_text="Provider timestamp of the newest applied subscription event",
                null=True,
            ),
        ),
    ]
