# branches/models/shift.py

from django.db import models

from .branch import Branch


class BranchShift(models.Model):
    """
    Named operating shift of a branch (e.g. "mediodia" 11:00-16:00,
    "noche" 19:00-02:00).

    An end_time at or before start_time means the shift crosses midnight.
    """

    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name="shifts")

    name = models.CharField(max_length=60)
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["branch", "start_time"]
        constraints = [
            models.UniqueConstraint(
                fields=["branch", "name"],
                name="uniq_branch_shift_name",
            ),
        ]

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time <= self.start_time

    def __str__(self):
        return f"{self.branch} | {self.name} {self.start_time:%H:%M}-{self.end_time:%H:%M}"
