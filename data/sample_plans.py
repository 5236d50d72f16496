"""
Sample media plan and onboarding data.

The sample plan is internally consistent: a full validation cascade over it
produces no auto-fixes and no warnings. Each call returns a fresh copy.
"""

from typing import Any, Dict


def sample_media_plan() -> Dict[str, Any]:
    """Return a consistent $15,000/month Google + Meta media plan as camelCase JSON."""
    return {
        'executiveSummary': {
            'overview': (
                "A $15,000/month paid acquisition program on Google Ads and Meta Ads, "
                "targeting 200 leads and 20 customers per month at a $750 CAC."
            ),
            'primaryObjective': "Acquire 20 customers per month at or below $750 CAC",
            'recommendedMonthlyBudget': 15000,
            'timelineToResults': "8-12 weeks",
            'topPriorities': [
                "Launch high-intent Google Search campaigns",
                "Build Meta retargeting audiences from site visitors",
                "Hold CPL at $75 while scaling",
            ],
        },
        'platformStrategy': [
            {
                'platform': "Google Ads",
                'rationale': "High-intent search demand; at $75 CPL it delivers most of the 200 leads.",
                'budgetPercentage': 60,
                'monthlySpend': 9000,
                'priority': "primary",
                'objectives': ["lead generation"],
            },
            {
                'platform': "Meta Ads",
                'rationale': "Prospecting and retargeting that nurture leads into 80 SQLs per month.",
                'budgetPercentage': 40,
                'monthlySpend': 6000,
                'priority': "secondary",
                'objectives': ["prospecting", "retargeting"],
            },
        ],
        'icpTargeting': {
            'platformTargeting': [
                {'platform': "Google Ads", 'keywords': ["crm for agencies", "agency project software"]},
                {'platform': "Meta Ads", 'interests': ["Digital marketing", "Agency owners"]},
            ],
            'demographics': "Agency founders and operations leads, 28-55",
        },
        'campaignStructure': {
            'campaigns': [
                {
                    'name': "Google Search - Core",
                    'platform': "Google Ads",
                    'objective': "Leads",
                    'funnelStage': "cold",
                    'dailyBudget': 180,
                    'monthlyBudget': 5400,
                },
                {
                    'name': "Google Brand Search",
                    'platform': "Google Ads",
                    'objective': "Leads",
                    'funnelStage': "hot",
                    'dailyBudget': 120,
                    'monthlyBudget': 3600,
                },
                {
                    'name': "Meta Prospecting",
                    'platform': "Meta Ads",
                    'objective': "Leads",
                    'funnelStage': "cold",
                    'dailyBudget': 120,
                    'monthlyBudget': 3600,
                },
                {
                    'name': "Meta Retargeting",
                    'platform': "Meta Ads",
                    'objective': "Conversions",
                    'funnelStage': "warm",
                    'dailyBudget': 80,
                    'monthlyBudget': 2400,
                },
            ],
            'namingConvention': "{platform}_{funnelStage}_{objective}",
        },
        'creativeStrategy': {
            'angles': ["Save 10 hours a week", "Client reporting on autopilot"],
        },
        'budgetAllocation': {
            'totalMonthlyBudget': 15000,
            'dailyCeiling': 500,
            'platformBreakdown': [
                {'platform': "Google Ads", 'percentage': 60, 'monthlyBudget': 9000},
                {'platform': "Meta Ads", 'percentage': 40, 'monthlyBudget': 6000},
            ],
            'funnelSplit': [
                {'stage': "cold", 'percentage': 60, 'rationale': "Build pipeline"},
                {'stage': "warm", 'percentage': 25, 'rationale': "Nurture engaged visitors"},
                {'stage': "hot", 'percentage': 15, 'rationale': "Capture brand demand"},
            ],
            'rampUpStrategy': "Start at $500/day and scale once CPL holds under $75.",
            'testingPhase': {'durationWeeks': 2, 'budget': 3000},
        },
        'campaignPhases': [
            {
                'name': "Foundation",
                'phase': 1,
                'durationWeeks': 4,
                'objective': "Establish baseline CPL",
                'estimatedBudget': 5000,
                'campaigns': ["Google Search - Core", "Meta Prospecting"],
            },
            {
                'name': "Scale",
                'phase': 2,
                'durationWeeks': 6,
                'objective': "Scale winning ad sets",
                'estimatedBudget': 10000,
                'campaigns': [
                    "Google Search - Core",
                    "Google Brand Search",
                    "Meta Prospecting",
                    "Meta Retargeting",
                ],
            },
        ],
        'kpiTargets': [
            {
                'metric': "Cost per Lead (CPL)",
                'target': "$75",
                'benchmark': "$60-$120 for B2B SaaS",
                'timeframe': "Month 2",
                'measurementMethod': "Ad platform conversions",
                'type': "primary",
            },
            {
                'metric': "Customer Acquisition Cost (CAC)",
                'target': "<$750",
                'benchmark': "$500-$1,200",
                'timeframe': "Month 3",
                'measurementMethod': "CRM closed-won / spend",
                'type': "primary",
            },
            {
                'metric': "Monthly Leads",
                'target': "200/month",
                'benchmark': "150-250",
                'timeframe': "Month 2",
                'measurementMethod': "CRM lead count",
                'type': "primary",
            },
            {
                'metric': "New Customers per Month",
                'target': "20",
                'benchmark': "15-25",
                'timeframe': "Month 3",
                'measurementMethod': "CRM closed-won",
                'type': "primary",
            },
            {
                'metric': "LTV:CAC Ratio",
                'target': "16.0:1",
                'benchmark': "3:1 minimum",
                'timeframe': "Month 3",
                'measurementMethod': "Finance model",
                'type': "secondary",
            },
            {
                'metric': "Click-Through Rate (CTR)",
                'target': "2.5%",
                'benchmark': "1.5-3%",
                'timeframe': "Month 1",
                'measurementMethod': "Ad platform reporting",
                'type': "secondary",
            },
        ],
        'performanceModel': {
            'cacModel': {
                'targetCAC': 750,
                'targetCPL': 75,
                'leadToSqlRate': 0.4,
                'sqlToCustomerRate': 0.25,
                'expectedMonthlyLeads': 200,
                'expectedMonthlySQLs': 80,
                'expectedMonthlyCustomers': 20,
                'estimatedLTV': 11964,
                'ltvToCacRatio': "16.0:1",
            },
            'monitoringCadence': "weekly",
        },
        'riskMonitoring': {
            'risks': [
                {
                    'risk': "CPL rises above $75 as audiences saturate",
                    'mitigation': "Refresh creative every two weeks",
                    'contingency': "Shift spend to the best CPL platform within the $15,000 budget",
                },
            ],
            'assumptions': [
                "Lead-to-SQL rate holds at 40%",
                "Sales closes 25% of 80 SQLs each month",
                "CAC stays near $750",
            ],
        },
        'metadata': {
            'generatedAt': "2026-01-15T10:00:00Z",
            'version': 1,
        },
    }


def sample_onboarding() -> Dict[str, Any]:
    """Return onboarding data matching the sample plan."""
    return {
        'budgetTargets': {
            'monthlyAdBudget': 15000,
            'targetCpl': 75,
        },
        'productOffer': {
            'offerPrice': 997,
            'pricingModel': ["monthly"],
            'pricingTiers': [],
        },
    }
