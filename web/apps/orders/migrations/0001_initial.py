from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="OrderModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_code", models.CharField(max_length=40, unique=True)),
                ("user_id", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("customer_name", models.CharField(max_length=255)),
                ("nik_kk", models.CharField(blank=True, max_length=16, null=True)),
                ("nik_ktp", models.CharField(max_length=16)),
                ("birth_place", models.CharField(max_length=100)),
                ("birth_date", models.DateField()),
                ("occupation", models.CharField(max_length=100)),
                ("address", models.TextField()),
                ("customer_phone", models.CharField(max_length=32)),
                ("stnk_name", models.CharField(max_length=255)),
                ("motorcycle_id", models.IntegerField()),
                ("motorcycle_name", models.CharField(max_length=255)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("status", models.CharField(default="new", max_length=32)),
                ("payment_status", models.CharField(blank=True, max_length=16, null=True)),
                ("payment_method", models.CharField(blank=True, max_length=16, null=True)),
                ("payment_proof", models.CharField(blank=True, max_length=255, null=True)),
                ("payment_date", models.DateTimeField(blank=True, null=True)),
                ("down_payment", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("down_payment_percent", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("loan_term", models.PositiveIntegerField(blank=True, null=True)),
                ("monthly_installment", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentRecordModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_code", models.CharField(max_length=40, unique=True)),
                ("order_id", models.BigIntegerField(db_index=True)),
                ("payment_method", models.CharField(default="bank_transfer", max_length=32)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("status", models.CharField(default="pending", max_length=16)),
                ("payment_proof_image", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField(blank=True, null=True)),
                ("expired_at", models.DateTimeField()),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "payment_records",
                "ordering": ["-created_at"],
            },
        ),
    ]
