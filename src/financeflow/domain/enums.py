from enum import Enum

class TransactionType(Enum):
    """Kind of a stored transaction"""
    EXPENSE = "expense" # out
    INCOME = "income" # in
    SUBSCRIPTION = "subscription" # recurring, out


class EntryDirection(Enum):
    """Direction of a statement line while it is being parsed"""
    DEBIT = "debit" # out
    CREDIT = "credit" # in

    def to_transaction_type(self) -> TransactionType:
        """debit -> expense, credit -> income"""
        if self is EntryDirection.DEBIT:
            return TransactionType.EXPENSE
        return TransactionType.INCOME
