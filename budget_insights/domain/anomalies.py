"""Statistical outlier detection over expense amounts"""

from typing import List, Sequence

from budget_insights.domain.models import (
    AnomalyResult,
    AnomalySeverity,
    EXPENSE,
    InsightPriority,
    TransactionRecord,
)
from budget_insights.domain.statistics import mean, std_dev

Z_THRESHOLD = 2.5
MIN_SAMPLES = 6


def determine_severity(z_score: float) -> AnomalySeverity:
    if z_score > 4.0:
        return AnomalySeverity.CRITICAL
    elif z_score > 3.5:
        return AnomalySeverity.HIGH
    elif z_score > 3.0:
        return AnomalySeverity.MEDIUM
    else:
        return AnomalySeverity.LOW


def severity_to_priority(severity: AnomalySeverity) -> InsightPriority:
    return {
        AnomalySeverity.LOW: InsightPriority.LOW,
        AnomalySeverity.MEDIUM: InsightPriority.MEDIUM,
        AnomalySeverity.HIGH: InsightPriority.HIGH,
        AnomalySeverity.CRITICAL: InsightPriority.URGENT,
    }[severity]


def detect_anomalies(
    transactions: Sequence[TransactionRecord],
    threshold: float = Z_THRESHOLD,
    min_samples: int = MIN_SAMPLES,
) -> List[AnomalyResult]:
    """
    Flag expenses more than threshold standard deviations from the mean.

    Returns an empty list when there are too few expenses or no spread.
    """
    expenses = [t for t in transactions if t.type == EXPENSE]
    if len(expenses) < min_samples:
        return []

    amounts = [abs(t.amount) for t in expenses]
    avg = mean(amounts)
    deviation = std_dev(amounts)
    if deviation == 0:
        return []

    anomalies = []
    for txn in expenses:
        z_score = abs(abs(txn.amount) - avg) / deviation
        if z_score > threshold:
            anomalies.append(
                AnomalyResult(
                    transaction=txn,
                    z_score=z_score,
                    confidence=min(z_score / threshold, 1.0),
                    severity=determine_severity(z_score),
                    reason=f"Transaction amount is {z_score:.1f} standard deviations from your average",
                )
            )

    return anomalies
