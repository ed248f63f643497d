"""Fake payment verifier: treats every reference as pre-verified unless configured otherwise."""

from marketplace.payments.port import PaymentVerifier, VerificationResult


class FakePaymentVerifier(PaymentVerifier):
    def __init__(self):
        self.verifications: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Payment reference could not be verified"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Payment reference could not be verified"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def verify(self, reference: str, amount: int, currency: str) -> VerificationResult:
        self.verifications.append({"reference": reference, "amount": amount, "currency": currency})
        if not self.should_succeed:
            return VerificationResult(verified=False, status="failed", failure_reason=self.failure_reason)
        return VerificationResult(verified=True, status="succeeded")

    def reset(self):
        self.verifications.clear()
        self.should_succeed = True
