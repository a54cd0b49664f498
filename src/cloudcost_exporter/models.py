"""
Data models for the OpenCost cloudCost API and the exchange-rate API.

All models are frozen pydantic models, so attribute assignment fails. Their
dict fields (labels, cloud_costs, rates) are plain dicts and are not frozen;
the exporter treats a parsed snapshot as read-only after it leaves the HTTP
client and shares it between concurrent scrapes without copying.

A JSON null in any field decodes to that field's default ("" for strings,
0.0 for numbers, empty for collections), so one incomplete item does not
fail the whole snapshot.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _FrozenModel(BaseModel):
    """Base for immutable API models populated from camelCase JSON."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_null_fields(cls, data: Any) -> Any:
        """Drop null-valued keys so the field defaults apply."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class CostValue(_FrozenModel):
    """A cost amount with the fraction of it attributed to Kubernetes."""

    cost: float = 0.0
    kubernetes_percent: float = Field(default=0.0, alias="kubernetesPercent")


class Window(_FrozenModel):
    """Time window covered by a cost item."""

    start: str | None = None
    end: str | None = None


class CloudCostProperties(_FrozenModel):
    """Identifying metadata of a cloud cost item."""

    provider_id: str = Field(default="", alias="providerID")
    provider: str = ""
    account_id: str = Field(default="", alias="accountID")
    account_name: str = Field(default="", alias="accountName")
    invoice_entity_id: str = Field(default="", alias="invoiceEntityID")
    invoice_entity_name: str = Field(default="", alias="invoiceEntityName")
    availability_zone: str = Field(default="", alias="availabilityZone")
    region_id: str = Field(default="", alias="regionID")
    service: str = ""
    category: str = ""
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", mode="before")
    @classmethod
    def validate_labels(cls, v):
        """Treat a null label value as an empty string."""
        if not v:
            return {}
        if not isinstance(v, dict):
            return v
        return {key: "" if value is None else value for key, value in v.items()}


class CloudCostItem(_FrozenModel):
    """A single cloud cost entry with its five cost figures."""

    properties: CloudCostProperties = Field(default_factory=CloudCostProperties)
    window: Window = Field(default_factory=Window)
    list_cost: CostValue = Field(default_factory=CostValue, alias="listCost")
    net_cost: CostValue = Field(default_factory=CostValue, alias="netCost")
    amortized_net_cost: CostValue = Field(default_factory=CostValue, alias="amortizedNetCost")
    invoiced_cost: CostValue = Field(default_factory=CostValue, alias="invoicedCost")
    amortized_cost: CostValue = Field(default_factory=CostValue, alias="amortizedCost")


class CloudCostSet(_FrozenModel):
    """A set of cloud costs keyed by opaque item identifier."""

    cloud_costs: dict[str, CloudCostItem] = Field(default_factory=dict, alias="cloudCosts")

    @field_validator("cloud_costs", mode="before")
    @classmethod
    def validate_cloud_costs(cls, v):
        """A null item decodes as an item with every field defaulted."""
        if not v:
            return {}
        if not isinstance(v, dict):
            return v
        return {item_id: {} if item is None else item for item_id, item in v.items()}


class CloudCostData(_FrozenModel):
    sets: list[CloudCostSet] = Field(default_factory=list)

    @field_validator("sets", mode="before")
    @classmethod
    def validate_sets(cls, v):
        if not v:
            return []
        if not isinstance(v, list):
            return v
        return [{} if cost_set is None else cost_set for cost_set in v]


class CloudCostResponse(_FrozenModel):
    """Response body of the /cloudCost endpoint (one cost snapshot)."""

    code: int = 0
    data: CloudCostData = Field(default_factory=CloudCostData)

    @property
    def item_count(self) -> int:
        """Total number of cost items across all sets."""
        return sum(len(cost_set.cloud_costs) for cost_set in self.data.sets)


class ExchangeRateResponse(_FrozenModel):
    """Response body of the Frankfurter /latest endpoint."""

    amount: float = 0.0
    base: str = ""
    date: str = ""
    rates: dict[str, float] = Field(default_factory=dict)
