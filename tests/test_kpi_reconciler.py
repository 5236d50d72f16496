"""
Tests for KPI target reconciliation.
"""

import pytest

from business_logic.cac_model import compute_cac_model
from business_logic.kpi_reconciler import KPIReconciler, classify_metric, parse_target_value
from models.data_models import KPITarget


class TestClassifyMetric:
    """Test mapping of free-text metric names to derived quantities."""

    @pytest.mark.parametrize("metric,expected", [
        ("Cost per Lead (CPL)", 'cpl'),
        ("Customer Acquisition Cost (CAC)", 'cac'),
        ("Blended CAC", 'cac'),
        ("Monthly Leads", 'leads'),
        ("Qualified leads per month", 'leads'),
        ("Monthly SQLs", 'sqls'),
        ("New Customers per Month", 'customers'),
        ("Customer Lifetime Value (LTV)", 'ltv'),
        ("LTV:CAC Ratio", 'ltv_cac'),
        ("Return on Ad Spend (ROAS)", 'roas'),
        ("Click-Through Rate (CTR)", None),
        ("Lead-to-SQL Conversion Rate", None),
        ("Cost per SQL", None),
        ("Brand search impression share", None),
    ])
    def test_classification(self, metric, expected):
        assert classify_metric(metric) == expected


class TestParseTargetValue:
    """Test extraction of the first number in a target string."""

    @pytest.mark.parametrize("target,value", [
        ("$75", 75),
        ("<$1,200", 1200),
        ("200/month", 200),
        ("$7.5k", 7500),
        ("16.0:1", 16.0),
        ("Under $750 by month 3", 750),
    ])
    def test_parse(self, target, value):
        parsed, _ = parse_target_value(target)

        assert parsed == pytest.approx(value)

    def test_no_number(self):
        assert parse_target_value("Improve steadily") is None


class TestKPIReconciler:
    """Test cases for KPIReconciler."""

    def setup_method(self):
        """Set up test fixtures."""
        self.reconciler = KPIReconciler()
        self.model = compute_cac_model(20000, 75, 0.4, 0.25, 997, 12).cac_model

    def test_overrides_deviating_targets(self):
        """Targets more than 5% off the model are rewritten in place."""
        kpis = [
            KPITarget(metric="Monthly Leads", target="200/month"),
            KPITarget(metric="New Customers per Month", target="20"),
        ]

        result = self.reconciler.reconcile(kpis, self.model, 20000, 997)

        assert result.kpi_targets[0].target == "266/month"
        assert result.kpi_targets[1].target == "27"
        assert [o.field for o in result.overrides] == ['kpiTargets[0].target', 'kpiTargets[1].target']
        assert result.overrides[0].rule == 'KPI_Leads_Override'
        assert result.overrides[0].original_value == "200/month"

    def test_within_tolerance_is_untouched(self):
        """<$750 is within 5% of $740.74 and stays as written."""
        kpis = [KPITarget(metric="Customer Acquisition Cost (CAC)", target="<$750")]

        result = self.reconciler.reconcile(kpis, self.model, 20000, 997)

        assert result.overrides == []
        assert result.kpi_targets is kpis

    def test_prefix_and_suffix_preserved(self):
        kpis = [KPITarget(metric="Customer Acquisition Cost", target="Below $1,000 per customer")]

        result = self.reconciler.reconcile(kpis, self.model, 20000, 997)

        assert result.kpi_targets[0].target == "Below $740.74 per customer"

    def test_ltv_cac_ratio_override(self):
        kpis = [KPITarget(metric="LTV:CAC Ratio", target="5:1")]

        result = self.reconciler.reconcile(kpis, self.model, 20000, 997)

        assert result.kpi_targets[0].target == "16.2:1"
        assert result.overrides[0].rule == 'KPI_LTVCAC_Override'

    def test_unknown_metrics_untouched(self):
        kpis = [
            KPITarget(metric="Click-Through Rate (CTR)", target="2.5%"),
            KPITarget(metric="Monthly Leads", target="Grow steadily"),
        ]

        result = self.reconciler.reconcile(kpis, self.model, 20000, 997)

        assert result.overrides == []
        assert [k.target for k in result.kpi_targets] == ["2.5%", "Grow steadily"]

    def test_undefined_cac_is_skipped(self):
        """KPIs are not compared with an undefined CAC."""
        model = compute_cac_model(100, 75, 0.4, 0.25, 997, 12).cac_model
        kpis = [
            KPITarget(metric="CAC", target="$750"),
            KPITarget(metric="LTV:CAC", target="3:1"),
        ]

        result = self.reconciler.reconcile(kpis, model, 100, 997)

        assert result.overrides == []

    def test_other_fields_preserved(self):
        kpis = [KPITarget(metric="Monthly Leads", target="200", benchmark="150-250", extra={'owner': 'growth'})]

        result = self.reconciler.reconcile(kpis, self.model, 20000, 997)

        assert result.kpi_targets[0].benchmark == "150-250"
        assert result.kpi_targets[0].extra == {'owner': 'growth'}
