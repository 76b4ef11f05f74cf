"""Exceptions raised by paycheckplanner."""


class InputValidationError(ValueError):
    """A single source record (bill, debt, income, allotment) is malformed.

    Callers catch this per record, log it and continue with the rest of the
    run. It never aborts a scheduling pass.
    """

    def __init__(self, record_type: str, record_id: str, reason: str):
        self.record_type = record_type
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Invalid {record_type} '{record_id}': {reason}")
