"""
sovcoin Exception Hierarchy

All exceptions inherit from SovCoinError for easy catching.

Category bases follow the settlement error taxonomy:

    InputValidationError  rejected before any state is touched
    MathError             checked arithmetic / fixed-point failures
    InvariantViolation    a computed allocation breaks a reserve rule
    StalePlanError        plan TTL exceeded at commit/execute time
    CollaboratorError     external collaborator (oracle, bond issuer) failed
    VerificationError     observed balance delta != planned delta
    LedgerError           balance-ledger primitive rejected a movement
    PlanError             plan store lookup/ownership failures
    AuthorizationError    caller is not allowed to run an admin instruction

Every leaf carries a stable ``code`` equal to its class name, which is what
the journal and CLI report.
"""


class SovCoinError(Exception):
    """Base exception for all sovcoin errors"""

    def __init__(self, message: str = None, details: dict = None):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.details = details or {}

    default_message = "Settlement error"

    @property
    def code(self) -> str:
        return type(self).__name__

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# ── Categories ────────────────────────────────────────────────

class InputValidationError(SovCoinError):
    """Raised when caller input is rejected"""
    pass


class MathError(SovCoinError):
    """Raised when checked arithmetic fails"""
    default_message = "Miscalculation"


class InvariantViolation(SovCoinError):
    """Raised when a computed allocation violates a reserve invariant"""
    pass


class StalePlanError(SovCoinError):
    """Raised when a plan is consumed after its time-to-live"""
    pass


class CollaboratorError(SovCoinError):
    """Raised when an external collaborator cannot complete a call"""
    pass


class VerificationError(SovCoinError):
    """Raised when post-transition balance verification fails"""
    pass


class LedgerError(SovCoinError):
    """Raised when ledger operations fail"""
    pass


class PlanError(SovCoinError):
    """Raised when a plan cannot be stored or consumed"""
    pass


class AuthorizationError(SovCoinError):
    """Raised when authorization fails"""
    pass


# ── Input validation ──────────────────────────────────────────

class InvalidAmount(InputValidationError):
    default_message = "Please enter a valid amount greater than zero"


class InsufficientBalance(InputValidationError):
    default_message = "Insufficient balance to redeem"


class InvalidBondRating(InputValidationError):
    default_message = "Bond rating must be between 1 and 10"


class InvalidFeeBasisPoints(InputValidationError):
    default_message = "Invalid fee basis points"


class InvalidReservePercentage(InputValidationError):
    default_message = "Invalid reserve percentage"


class InvalidBondReserveRatio(InputValidationError):
    default_message = "The bond reserve ratio is invalid"


class InvalidYieldDistribution(InputValidationError):
    default_message = "Invalid yield distribution. Must sum to 100%"


class NameTooLong(InputValidationError):
    default_message = "Name must be 1-32 bytes"


class SymbolTooLong(InputValidationError):
    default_message = "Symbol must be 1-8 bytes"


class UriTooLong(InputValidationError):
    default_message = "URI must be at most 200 bytes"


class FiatCurrencyTooLong(InputValidationError):
    default_message = "Fiat currency code must be 1-8 bytes"


class InvalidPreviewInput(InputValidationError):
    default_message = "Provide either a settlement amount or a sovereign amount, not both"


class MaxBondMappingsReached(InputValidationError):
    default_message = "The maximum bond mapping limit has been reached"


class NoBondMappingForCurrency(InputValidationError):
    default_message = "No bond mapping found for the specified fiat currency"


class CoinNotFound(InputValidationError):
    default_message = "Sovereign coin not found"


class FactoryNotInitialized(InputValidationError):
    default_message = "Factory has not been initialized"


class FactoryAlreadyInitialized(InputValidationError):
    default_message = "Factory has already been initialized"


class CoinAlreadyExists(InputValidationError):
    default_message = "A sovereign coin with this symbol already exists"


class ConfigError(InputValidationError):
    default_message = "Invalid settings"


# ── Arithmetic ────────────────────────────────────────────────

class MathOverflow(MathError):
    default_message = "Math overflow"


class DivisionByZero(MathError):
    default_message = "Division by zero"


# ── Invariants ────────────────────────────────────────────────

class InvalidCalculatedAmount(InvariantViolation):
    default_message = "The amount calculated does not equal the original amount"


class ReserveExceeds100Percent(InvariantViolation):
    default_message = "Reserve exceeds 100%"


class StateUpdateFailed(InvariantViolation):
    default_message = "State update failed"


# ── Staleness ─────────────────────────────────────────────────

class MintStateExpired(StalePlanError):
    default_message = "Mint state has expired"


class RedeemStateExpired(StalePlanError):
    default_message = "Redeem state has expired"


# ── Collaborators ─────────────────────────────────────────────

class InvalidPriceFeed(CollaboratorError):
    default_message = "Invalid price feed"


class InstantRedemptionFailed(CollaboratorError):
    default_message = "Instant bond redemption failed"


class NFTTokenAccountRequired(InstantRedemptionFailed):
    """Instant liquidation failed and no claim accounts were attached"""
    default_message = "NFT token account required for bond redemption"


class NFTRedemptionFailed(CollaboratorError):
    default_message = "NFT redemption failed"


class BondPurchaseFailed(CollaboratorError):
    default_message = "Bond purchase failed"


# ── Post-condition verification ───────────────────────────────

class MintVerificationFailed(VerificationError):
    default_message = "The mint final verification did not pass"


class RedemptionVerificationFailed(VerificationError):
    default_message = "Redemption verification failed"


class InsufficientRedemptionPayout(VerificationError):
    default_message = "Insufficient redemption payout"


# ── Ledger ────────────────────────────────────────────────────

class InsufficientFunds(LedgerError):
    default_message = "Insufficient funds for transfer"


# ── Plans ─────────────────────────────────────────────────────

class PlanNotFound(PlanError):
    default_message = "No pending plan for this requester and coin"


class PlanAlreadyExists(PlanError):
    default_message = "A plan is already pending for this requester and coin"


class RedemptionPathMismatch(PlanError):
    default_message = "Redeem plan path does not permit this execution variant"


# ── Authorization ─────────────────────────────────────────────

class Unauthorized(AuthorizationError):
    default_message = "Unauthorized"
