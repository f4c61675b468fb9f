"""
Standard Nomyx apps.

Manifests of the apps shipped with the platform, grouped in categories.
``standard_catalog()`` returns a ``ManifestCatalog`` preloaded with them.
"""

from typing import Any, Dict, List, Optional

from .sources import ManifestCatalog
from .validator import ManifestValidator

PUBLISHER = "Nomyx Platform"
FRAMEWORK = {"version": "1.0.0", "compatibility": ["1.0.0", "1.1.0"]}

IDENTITY_MANAGEMENT = "nomyx-identity-management"
DIGITAL_ASSETS = "nomyx-digital-assets"
WALLET_MANAGEMENT = "nomyx-wallet-management"
KYC_COMPLIANCE = "nomyx-kyc-compliance"
TRADE_FINANCE = "nomyx-trade-finance"
PLATFORM_ADMIN = "nomyx-platform-admin"

STANDARD_CATEGORIES: Dict[str, List[str]] = {
    "core": [IDENTITY_MANAGEMENT, DIGITAL_ASSETS, WALLET_MANAGEMENT],
    "finance": [TRADE_FINANCE, DIGITAL_ASSETS],
    "compliance": [KYC_COMPLIANCE],
    "admin": [PLATFORM_ADMIN],
}


def _route(path: str, component: str, title: str, *permissions: str) -> Dict[str, Any]:
    return {
        "path": path,
        "component": component,
        "title": title,
        "permissions": list(permissions),
        "layout": "default",
    }


def _nav(label: str, path: str, order: int, icon: str, *permissions: str) -> Dict[str, Any]:
    return {
        "label": label,
        "path": path,
        "order": order,
        "icon": icon,
        "permissions": list(permissions),
    }


def _dep(app_id: str, *apis: str, optional: bool = False) -> Dict[str, Any]:
    return {"appId": app_id, "version": "1.0.0", "apis": list(apis), "optional": optional}


def _select(label: str, default: str, *values: str, required: bool = True) -> Dict[str, Any]:
    return {
        "type": "select",
        "label": label,
        "defaultValue": default,
        "required": required,
        "options": [{"value": v, "label": v} for v in values],
    }


def _number(label: str, default: float, low: Optional[float] = None, high: Optional[float] = None) -> Dict[str, Any]:
    validation = {k: v for k, v in (("min", low), ("max", high)) if v is not None}
    field: Dict[str, Any] = {"type": "number", "label": label, "defaultValue": default, "required": True}
    if validation:
        field["validation"] = validation
    return field


def _flag(label: str, default: bool) -> Dict[str, Any]:
    return {"type": "boolean", "label": label, "defaultValue": default, "required": False}


def _job(job_id: str, name: str, schedule: str, function: str) -> Dict[str, Any]:
    return {"id": job_id, "name": name, "schedule": schedule, "function": function}


IDENTITY_MANAGEMENT_MANIFEST: Dict[str, Any] = {
    "id": IDENTITY_MANAGEMENT,
    "name": "Identity Management",
    "version": "1.0.0",
    "publisher": PUBLISHER,
    "description": "On-chain identities, claims and identity verification",
    "framework": FRAMEWORK,
    "adminUI": {
        "enabled": True,
        "routes": [
            _route("/", "IdentityDashboard", "Identity Dashboard"),
            _route("/identities", "IdentityManagement", "Identities", "identity:read", "identity:write"),
            _route("/claims", "ClaimManagement", "Claims", "claims:manage"),
        ],
        "navigation": [
            _nav("Identity Dashboard", "/", 1, "🪪"),
            _nav("Identities", "/identities", 2, "👤", "identity:read"),
            _nav("Claims", "/claims", 3, "📜", "claims:manage"),
        ],
        "permissions": ["identity:read", "identity:write", "claims:manage"],
    },
    "userUI": {
        "enabled": True,
        "routes": [
            _route("/my-identity", "UserIdentity", "My Identity"),
        ],
    },
    "backend": {
        "cloudFunctions": ["verifyIdentity", "getIdentityDetails", "updateIdentityStatus"],
        "schemas": ["Identity", "IdentityClaim"],
    },
    "dependencies": {"platform": "1.0.0", "apps": [], "permissions": ["parse:read", "parse:write", "blockchain:read"]},
    "configuration": {
        "schema": {
            "requireVerifiedEmail": _flag("Require Verified Email", True),
            "claimTopics": {
                "type": "multiselect",
                "label": "Claim Topics",
                "defaultValue": ["kyc", "accreditation"],
                "required": True,
                "options": [
                    {"value": "kyc", "label": "KYC"},
                    {"value": "accreditation", "label": "Accreditation"},
                    {"value": "residency", "label": "Residency"},
                ],
            },
        },
        "defaultValues": {"requireVerifiedEmail": True, "claimTopics": ["kyc", "accreditation"]},
    },
    "apis": [{"name": "verifyIdentity"}, {"name": "getIdentityDetails"}, {"name": "updateIdentityStatus"}],
    "category": "core",
}

DIGITAL_ASSETS_MANIFEST: Dict[str, Any] = {
    "id": DIGITAL_ASSETS,
    "name": "Digital Asset Management",
    "version": "1.0.0",
    "publisher": PUBLISHER,
    "description": "Tokenization and digital asset management with NFT minting and royalties",
    "framework": FRAMEWORK,
    "adminUI": {
        "enabled": True,
        "routes": [
            _route("/", "AssetDashboard", "Asset Dashboard"),
            _route("/create", "AssetCreator", "Create Asset", "assets:write"),
            _route("/marketplace", "AssetMarketplace", "Marketplace", "marketplace:read"),
            _route("/royalties", "RoyaltyManagement", "Royalties", "assets:manage", "finance:read"),
        ],
        "navigation": [
            _nav("Asset Dashboard", "/", 1, "💎"),
            _nav("Create Asset", "/create", 2, "➕", "assets:write"),
            _nav("Marketplace", "/marketplace", 3, "🏪", "marketplace:read"),
            _nav("Royalties", "/royalties", 5, "💰", "assets:manage"),
        ],
        "permissions": ["assets:read", "assets:write", "assets:manage", "marketplace:read"],
    },
    "userUI": {
        "enabled": True,
        "routes": [
            _route("/portfolio", "AssetPortfolio", "My Portfolio"),
            _route("/marketplace", "UserMarketplace", "Marketplace"),
        ],
    },
    "backend": {"cloudFunctions": ["mintAsset", "transferAsset", "burnAsset"], "schemas": ["DigitalAsset"]},
    "scheduledJobs": [
        _job("royalty-distribution", "Daily Royalty Distribution", "0 2 * * *", "distributeRoyalties"),
        _job("marketplace-analytics", "Marketplace Analytics Update", "0 */6 * * *", "updateMarketplaceAnalytics"),
    ],
    "dependencies": {
        "platform": "1.0.0",
        "apps": [_dep(IDENTITY_MANAGEMENT, "getIdentityDetails")],
        "permissions": ["blockchain:read", "blockchain:write"],
    },
    "configuration": {
        "schema": {
            "defaultTokenStandard": _select("Default Token Standard", "ERC721", "ERC721", "ERC1155", "ERC20"),
            "marketplaceFee": _number("Marketplace Fee (%)", 2.5, low=0, high=10),
            "maxRoyaltyPercentage": _number("Maximum Royalty (%)", 10, low=0, high=25),
        },
        "defaultValues": {"defaultTokenStandard": "ERC721", "marketplaceFee": 2.5, "maxRoyaltyPercentage": 10},
    },
    "category": "core",
}

WALLET_MANAGEMENT_MANIFEST: Dict[str, Any] = {
    "id": WALLET_MANAGEMENT,
    "name": "Wallet Management Platform",
    "version": "1.0.0",
    "publisher": PUBLISHER,
    "description": "Wallet management with multi-signature support and hardware wallet integration",
    "framework": FRAMEWORK,
    "adminUI": {
        "enabled": True,
        "routes": [
            _route("/", "WalletDashboard", "Wallet Dashboard"),
            _route("/wallets", "WalletManagement", "Wallet Management", "wallets:read", "wallets:write"),
            _route("/multisig", "MultisigManagement", "Multi-Signature Wallets", "wallets:manage", "multisig:manage"),
            _route("/transactions", "TransactionManagement", "Transaction Management", "transactions:read"),
            _route("/security", "WalletSecurity", "Security Management", "security:manage"),
        ],
        "navigation": [
            _nav("Wallet Dashboard", "/", 1, "👛"),
            _nav("Wallet Management", "/wallets", 2, "💼", "wallets:read"),
            _nav("Multi-Signature", "/multisig", 3, "🔐", "multisig:manage"),
            _nav("Transactions", "/transactions", 4, "💸", "transactions:read"),
            _nav("Security", "/security", 5, "🛡️", "security:manage"),
        ],
        "permissions": [
            "wallets:read", "wallets:write", "wallets:manage", "multisig:manage",
            "transactions:read", "security:manage",
        ],
    },
    "userUI": {
        "enabled": True,
        "routes": [
            _route("/my-wallets", "UserWalletPortfolio", "My Wallets"),
            _route("/send", "SendTransaction", "Send"),
            _route("/receive", "ReceiveTransaction", "Receive"),
            _route("/history", "TransactionHistory", "History"),
        ],
    },
    "backend": {
        "cloudFunctions": ["createWallet", "getWalletBalance", "sendTransaction"],
        "schemas": ["Wallet", "WalletTransaction"],
    },
    "dependencies": {
        "platform": "1.0.0",
        "apps": [
            _dep(IDENTITY_MANAGEMENT, "verifyIdentity", "getIdentityDetails"),
            _dep(KYC_COMPLIANCE, "checkCompliance", "validateTransaction", optional=True),
        ],
        "permissions": ["blockchain:read", "blockchain:write", "dfns:read", "dfns:write"],
    },
    "configuration": {
        "schema": {
            "defaultWalletType": _select("Default Wallet Type", "custodial", "custodial", "non-custodial", "multisig"),
            "supportedNetworks": {
                "type": "multiselect",
                "label": "Supported Networks",
                "defaultValue": ["ethereum", "polygon"],
                "required": True,
                "options": [
                    {"value": n, "label": n.title()}
                    for n in ("ethereum", "polygon", "arbitrum", "optimism", "base", "bsc", "avalanche")
                ],
            },
            "defaultSpendingLimit": _number("Default Daily Spending Limit (USD)", 1000, low=0),
            "multisigThreshold": _number("Default Multisig Threshold", 2, low=2, high=10),
            "enableHardwareWallets": _flag("Enable Hardware Wallet Integration", True),
            "securityLevel": _select("Security Level", "high", "standard", "high", "maximum"),
            "sessionTimeout": _number("Session Timeout (Minutes)", 30, low=5, high=480),
            "maxWalletsPerUser": _number("Maximum Wallets Per User", 10, low=1, high=100),
        },
        "defaultValues": {
            "defaultWalletType": "custodial",
            "supportedNetworks": ["ethereum", "polygon"],
            "defaultSpendingLimit": 1000,
            "multisigThreshold": 2,
            "enableHardwareWallets": True,
            "securityLevel": "high",
            "sessionTimeout": 30,
            "maxWalletsPerUser": 10,
        },
    },
    "category": "core",
}

KYC_COMPLIANCE_MANIFEST: Dict[str, Any] = {
    "id": KYC_COMPLIANCE,
    "name": "KYC & Compliance Platform",
    "version": "1.0.0",
    "publisher": PUBLISHER,
    "description": "KYC, AML and regulatory compliance with automated verification and risk assessment",
    "framework": FRAMEWORK,
    "adminUI": {
        "enabled": True,
        "routes": [
            _route("/", "ComplianceDashboard", "Compliance Dashboard"),
            _route("/kyc-reviews", "KYCReviews", "KYC Reviews", "kyc:review", "kyc:approve"),
            _route("/aml-monitoring", "AMLMonitoring", "AML Monitoring", "aml:monitor", "compliance:read"),
            _route("/sanctions-screening", "SanctionsScreening", "Sanctions Screening", "sanctions:screen"),
            _route("/settings", "ComplianceSettings", "Settings", "compliance:manage"),
        ],
        "navigation": [
            _nav("Compliance Dashboard", "/", 1, "🛡️"),
            _nav("KYC Reviews", "/kyc-reviews", 2, "📝", "kyc:review"),
            _nav("AML Monitoring", "/aml-monitoring", 3, "🔍", "aml:monitor"),
            _nav("Sanctions Screening", "/sanctions-screening", 4, "🚫", "sanctions:screen"),
            _nav("Settings", "/settings", 9, "⚙️", "compliance:manage"),
        ],
        "permissions": ["kyc:review", "kyc:approve", "aml:monitor", "sanctions:screen", "compliance:read", "compliance:manage"],
    },
    "userUI": {
        "enabled": True,
        "routes": [
            _route("/verification", "UserVerification", "Identity Verification"),
            _route("/status", "VerificationStatus", "Verification Status"),
            _route("/documents", "UserDocuments", "My Documents"),
        ],
    },
    "backend": {
        "cloudFunctions": ["submitKYC", "reviewKYC", "screenSanctions", "checkCompliance"],
        "schemas": ["KYCSubmission", "AMLAlert"],
    },
    "scheduledJobs": [
        _job("daily-sanctions-screening", "Daily Sanctions Screening", "0 3 * * *", "performDailySanctionsScreening"),
        _job("aml-monitoring", "AML Transaction Monitoring", "0 */4 * * *", "monitorAMLTransactions"),
        _job("risk-score-updates", "Risk Score Updates", "0 2 * * *", "updateRiskScores"),
    ],
    "dependencies": {
        "platform": "1.0.0",
        "apps": [_dep(IDENTITY_MANAGEMENT, "getIdentityDetails", "updateIdentityStatus")],
        "permissions": ["parse:read", "parse:write", "documents:read", "external-api:sanctions"],
    },
    "configuration": {
        "schema": {
            "kycTier": _select("KYC Verification Tier", "tier2", "tier1", "tier2", "tier3"),
            "amlThreshold": _number("AML Monitoring Threshold (USD)", 10000, low=1000),
            "riskToleranceLevel": _select("Risk Tolerance Level", "medium", "low", "medium", "high"),
            "autoApproveThreshold": _number("Auto-Approve Risk Score Threshold", 30, low=0, high=100),
            "sanctionsScreeningProvider": _select(
                "Sanctions Screening Provider", "ofac", "ofac", "eu-sanctions", "un-sanctions", "comprehensive"
            ),
            "enableBiometricVerification": _flag("Enable Biometric Verification", True),
            "kycExpiryMonths": _number("KYC Expiry Period (Months)", 24, low=6, high=60),
        },
        "defaultValues": {
            "kycTier": "tier2",
            "amlThreshold": 10000,
            "riskToleranceLevel": "medium",
            "autoApproveThreshold": 30,
            "sanctionsScreeningProvider": "ofac",
            "enableBiometricVerification": True,
            "kycExpiryMonths": 24,
        },
    },
    "apis": [{"name": "checkCompliance"}, {"name": "validateTransaction"}],
    "category": "compliance",
}

TRADE_FINANCE_MANIFEST: Dict[str, Any] = {
    "id": TRADE_FINANCE,
    "name": "Trade Finance Platform",
    "version": "1.0.0",
    "publisher": PUBLISHER,
    "description": "Trade finance and supply chain management with letters of credit",
    "framework": FRAMEWORK,
    "adminUI": {
        "enabled": True,
        "routes": [
            _route("/", "TradeDashboard", "Trade Dashboard"),
            _route("/deals", "TradeDeals", "Trade Deals", "trades:read", "trades:write"),
            _route("/letters-of-credit", "LettersOfCredit", "Letters of Credit", "finance:manage", "trades:write"),
            _route("/financing", "TradeFinancing", "Financing", "finance:manage"),
        ],
        "navigation": [
            _nav("Trade Dashboard", "/", 1, "🚢"),
            _nav("Trade Deals", "/deals", 2, "🤝", "trades:read"),
            _nav("Letters of Credit", "/letters-of-credit", 3, "📄", "finance:manage"),
            _nav("Financing", "/financing", 5, "🏦", "finance:manage"),
        ],
        "permissions": ["trades:read", "trades:write", "finance:manage"],
    },
    "userUI": {
        "enabled": True,
        "routes": [
            _route("/my-trades", "UserTrades", "My Trades"),
            _route("/financing-requests", "FinancingRequests", "Financing Requests"),
        ],
    },
    "backend": {"cloudFunctions": ["createTradeDeal", "issueLetterOfCredit"], "schemas": ["TradeDeal"]},
    "scheduledJobs": [
        _job("trade-status-updates", "Trade Status Updates", "0 */2 * * *", "updateTradeStatuses"),
        _job("payment-reminders", "Payment Reminders", "0 9 * * *", "sendPaymentReminders"),
    ],
    "dependencies": {
        "platform": "1.0.0",
        "apps": [
            _dep(IDENTITY_MANAGEMENT, "getIdentityDetails"),
            _dep(DIGITAL_ASSETS, "mintAsset", optional=True),
        ],
        "permissions": ["blockchain:read", "blockchain:write"],
    },
    "configuration": {
        "schema": {
            "defaultCurrency": _select("Default Currency", "USD", "USD", "EUR", "GBP", "USDC"),
            "maxDealValue": _number("Maximum Deal Value (USD)", 10000000, low=1000),
            "requireEscrow": _flag("Require Escrow", True),
        },
        "defaultValues": {"defaultCurrency": "USD", "maxDealValue": 10000000, "requireEscrow": True},
    },
    "category": "finance",
}

PLATFORM_ADMIN_MANIFEST: Dict[str, Any] = {
    "id": PLATFORM_ADMIN,
    "name": "Platform Admin Suite",
    "version": "1.0.0",
    "publisher": PUBLISHER,
    "description": "User management, system monitoring and configuration management",
    "framework": FRAMEWORK,
    "adminUI": {
        "enabled": True,
        "routes": [
            _route("/", "AdminDashboard", "Admin Dashboard"),
            _route("/users", "UserManagement", "User Management", "users:read", "users:write"),
            _route("/apps", "AppManagement", "App Management", "apps:manage"),
            _route("/system", "SystemMonitoring", "System Monitoring", "system:monitor"),
            _route("/configuration", "PlatformConfiguration", "Configuration", "platform:configure"),
        ],
        "navigation": [
            _nav("Admin Dashboard", "/", 1, "🏠"),
            _nav("User Management", "/users", 2, "👥", "users:read"),
            _nav("App Management", "/apps", 3, "🧩", "apps:manage"),
            _nav("System Monitoring", "/system", 4, "📈", "system:monitor"),
            _nav("Configuration", "/configuration", 5, "⚙️", "platform:configure"),
        ],
        "permissions": ["users:read", "users:write", "apps:manage", "system:monitor", "platform:configure"],
    },
    "userUI": {"enabled": False},
    "backend": {"cloudFunctions": ["getSystemHealth", "getPlatformMetrics"], "schemas": ["SystemAlert"]},
    "scheduledJobs": [
        _job("system-health-check", "System Health Check", "*/5 * * * *", "performSystemHealthCheck"),
    ],
    "dependencies": {"platform": "1.0.0", "apps": [], "permissions": ["parse:admin", "system:admin"]},
    "configuration": {
        "schema": {
            "enableSystemAlerts": _flag("Enable System Alerts", True),
            "alertThresholds": {
                "type": "object",
                "label": "Alert Thresholds",
                "description": "Thresholds for system alerts",
                "defaultValue": {"cpuUsage": 80, "memoryUsage": 85, "diskUsage": 90, "errorRate": 5},
                "required": True,
            },
            "maxConcurrentUsers": _number("Maximum Concurrent Users", 10000, low=1),
            "rateLimitRequestsPerMinute": _number("Rate Limit (Requests/Minute)", 100, low=1, high=10000),
        },
        "defaultValues": {
            "enableSystemAlerts": True,
            "alertThresholds": {"cpuUsage": 80, "memoryUsage": 85, "diskUsage": 90, "errorRate": 5},
            "maxConcurrentUsers": 10000,
            "rateLimitRequestsPerMinute": 100,
        },
    },
    "category": "admin",
}

STANDARD_MANIFESTS: List[Dict[str, Any]] = [
    IDENTITY_MANAGEMENT_MANIFEST,
    DIGITAL_ASSETS_MANIFEST,
    WALLET_MANAGEMENT_MANIFEST,
    KYC_COMPLIANCE_MANIFEST,
    TRADE_FINANCE_MANIFEST,
    PLATFORM_ADMIN_MANIFEST,
]


def standard_catalog(validator: Optional[ManifestValidator] = None) -> ManifestCatalog:
    """Catalog preloaded with the standard apps and their categories."""
    catalog = ManifestCatalog(validator)
    for data in STANDARD_MANIFESTS:
        categories = [name for name, members in STANDARD_CATEGORIES.items() if data["id"] in members]
        catalog.add(data, categories=categories)
    return catalog
