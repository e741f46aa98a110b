from django.db import models


class OrderModel(models.Model):
    # Public code shown to customers, e.g. ORD1718000000000X7K2P
    order_code = models.CharField(max_length=40, unique=True)
    user_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)

    customer_name = models.CharField(max_length=255)
    nik_kk = models.CharField(max_length=16, null=True, blank=True)
    nik_ktp = models.CharField(max_length=16)
    birth_place = models.CharField(max_length=100)
    birth_date = models.DateField()
    occupation = models.CharField(max_length=100)
    address = models.TextField()
    customer_phone = models.CharField(max_length=32)
    stnk_name = models.CharField(max_length=255)

    motorcycle_id = models.IntegerField()
    motorcycle_name = models.CharField(max_length=255)
    total_price = models.DecimalField(max_digits=14, decimal_places=2)
    quantity = models.PositiveIntegerField(null=True, blank=True)

    # Free-form workflow state set by admins (new, processing, completed, ...)
    status = models.CharField(max_length=32, default="new")
    payment_status = models.CharField(max_length=16, null=True, blank=True)
    payment_method = models.CharField(max_length=16, null=True, blank=True)
    payment_proof = models.CharField(max_length=255, null=True, blank=True)
    payment_date = models.DateTimeField(null=True, blank=True)

    # Credit only
    down_payment = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    down_payment_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    loan_term = models.PositiveIntegerField(null=True, blank=True)
    monthly_installment = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]


class PaymentRecordModel(models.Model):
    payment_code = models.CharField(max_length=40, unique=True)
    # Soft reference to orders.id, no FK constraint
    order_id = models.BigIntegerField(db_index=True)
    payment_method = models.CharField(max_length=32, default="bank_transfer")
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=16, default="pending")
    payment_proof_image = models.CharField(max_length=255, null=True, blank=True)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField()
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "payment_records"
        ordering = ["-created_at"]
