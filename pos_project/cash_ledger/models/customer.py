from django.db import models


# ---------- Customer ----------
# Person or business that orders from the shop and may owe a receivable
class Customer(models.Model):
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["name"], name="customer_name_idx")]
        ordering = ("name",)

    def __str__(self):
        return self.name
