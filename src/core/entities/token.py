from pydantic import BaseModel


class TokenDataResponse(BaseModel):
    """
    Token and mining contract state as shown on the dashboard.
    Amounts are 18-decimal strings.
    """
    tokenName: str
    tokenSymbol: str
    claimedAmount: str
    maxSupply: str
    lastDepositId: int
    totalETH: str
    noOfPhases: int
