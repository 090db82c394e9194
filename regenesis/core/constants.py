"""Address sets, hash constants and compiler mappings for the surgery.

Hashes are lower-case hex without a ``0x`` prefix, matching the encoding
of the legacy state dump.
"""

from __future__ import annotations

# keccak256("")
KECCAK256_NULL = "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
# keccak256(rlp(""))
KECCAK256_RLP = "56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"

# Key under which a single-file source bundle is compiled.
DEFAULT_SOURCE_FILE = "file"

# Precompiles live at addresses whose first 19 bytes are zero.
_PRECOMPILE_PREFIX = "0x" + "00" * 19


def is_precompile(address: str) -> bool:
    return address.lower().startswith(_PRECOMPILE_PREFIX) and len(address) == 42


# ── Predeploys ───────────────────────────────────────────────────────────────

OLD_ETH_ADDRESS = "0x4200000000000000000000000000000000000006"
NEW_ETH_ADDRESS = "0xdeaddeaddeaddeaddeaddeaddeaddeaddead0000"
WETH_ADDRESS = OLD_ETH_ADDRESS

PREDEPLOY_DEAD_ADDRESSES: frozenset[str] = frozenset({
    "0x4200000000000000000000000000000000000001",  # OVM_L1MessageSender
    "0x4200000000000000000000000000000000000003",  # OVM_ECDSAContractAccount
    "0x4200000000000000000000000000000000000004",  # OVM_SequencerEntrypoint
    "0x4200000000000000000000000000000000000005",  # OVM_ProxyEOA
    "0x4200000000000000000000000000000000000008",  # OVM_ExecutionManager
    "0x4200000000000000000000000000000000000009",  # OVM_StateManager
    "0x420000000000000000000000000000000000000a",  # OVM_StateManagerFactory
    "0x420000000000000000000000000000000000000b",  # OVM_SafetyChecker
    "0x420000000000000000000000000000000000000c",  # OVM_ExecutionManagerWrapper
})

PREDEPLOY_WIPE_ADDRESSES: frozenset[str] = frozenset({
    "0x4200000000000000000000000000000000000002",  # DeployerWhitelist
    "0x420000000000000000000000000000000000000f",  # GasPriceOracle
    "0x4200000000000000000000000000000000000010",  # L2StandardBridge
    "0x4200000000000000000000000000000000000011",  # SequencerFeeVault
    "0x4200000000000000000000000000000000000012",  # L2StandardTokenFactory
    "0x4200000000000000000000000000000000000013",  # L1BlockNumber
})

PREDEPLOY_NO_WIPE_ADDRESSES: frozenset[str] = frozenset({
    "0x4200000000000000000000000000000000000000",  # L2ToL1MessagePasser
    "0x4200000000000000000000000000000000000007",  # L2CrossDomainMessenger
})

PREDEPLOY_ETH_ADDRESSES: frozenset[str] = frozenset({NEW_ETH_ADDRESS})
PREDEPLOY_WETH_ADDRESSES: frozenset[str] = frozenset({WETH_ADDRESS})

# ── Uniswap V3 ───────────────────────────────────────────────────────────────

UNISWAP_V3_FACTORY_ADDRESS = "0x1f98431c8ad98523631ae4a59f267346ea31f984"
UNISWAP_V3_NFPM_ADDRESS = "0xc36442b4a4522e871399cd717abdd847ab11fe88"

UNISWAP_V3_LIB_ADDRESSES: frozenset[str] = frozenset({
    "0x42b24a95702b9986e82d421cc3568932790a48ec",  # NFTDescriptor
})

UNISWAP_V3_OTHER_ADDRESSES: frozenset[str] = frozenset({
    "0xe592427a0aece92de3edee1f18e0157c05861564",  # SwapRouter
    "0xb27308f9f90d607463bb33ea1bebb41c27ce5ab6",  # Quoter
    "0xbfd8137f7d1516d3ea5ca83523914859ec47f573",  # TickLens
    "0x91ae842a5ffd8d12023116943e72a606179294f3",  # NonfungibleTokenPositionDescriptor
    "0xa5644e29708357803b5a882d272c41cc0df92b34",  # V3Migrator
})

# ── Compilers ────────────────────────────────────────────────────────────────

# Archived (legacy toolchain) compiler version -> upstream solc release
COMPILER_VERSIONS_TO_SOLC: dict[str, str] = {
    "v0.5.16": "v0.5.16+commit.9c3226ce",
    "v0.5.16-alpha.7": "v0.5.16+commit.9c3226ce",
    "v0.6.12": "v0.6.12+commit.27d51765",
    "v0.7.6": "v0.7.6+commit.7338295f",
    "v0.7.6+commit.3b061308": "v0.7.6+commit.7338295f",
    "v0.7.6-allow_kall": "v0.7.6+commit.7338295f",
    "v0.7.6-allow_kall-2": "v0.7.6+commit.7338295f",
    "v0.7.6-no_errors": "v0.7.6+commit.7338295f",
    "v0.8.4": "v0.8.4+commit.c7e474f2",
}
