from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("events", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="registration",
            name="last_reconciled_at",
            field=models.DateTimeField(
                blank=True,
                help_text="When the reconciliation sweep last asked the provider about this registration",
                null=True,
            ),
        ),
    ]
