from .stars import StarBalanceSchema, StarTransactionEntry, StarBalanceResponse
from .rewards import AwardOutcome, ShareVisitAwardResponse
