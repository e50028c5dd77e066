"""
Contract ABI fragments used by the dashboard.
"""

DEPOSITED_EVENT_ABI = {
    "anonymous": False,
    "inputs": [
        {"indexed": True, "internalType": "uint256", "name": "depositId", "type": "uint256"},
        {"indexed": True, "internalType": "address", "name": "sender", "type": "address"},
        {"indexed": True, "internalType": "bytes32", "name": "recipientSaltHash", "type": "bytes32"},
        {"indexed": False, "internalType": "uint32", "name": "tokenIndex", "type": "uint32"},
        {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
        {"indexed": False, "internalType": "uint256", "name": "depositedAt", "type": "uint256"},
    ],
    "name": "Deposited",
    "type": "event",
}


def _view(name: str, output_type: str) -> dict:
    return {
        "inputs": [],
        "name": name,
        "outputs": [{"internalType": output_type, "name": "", "type": output_type}],
        "stateMutability": "view",
        "type": "function",
    }


TOKEN_ABI = [
    _view("name", "string"),
    _view("symbol", "string"),
    _view("totalClaimedAmount", "uint256"),
    _view("MAX_SUPPLY", "uint256"),
    _view("NUM_PHASES", "uint256"),
]

MINING_ABI = [
    _view("getLastProcessedDepositId", "uint256"),
]
