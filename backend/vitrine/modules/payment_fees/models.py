# vitrine/modules/payment_fees/models.py

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PaymentMethod = Literal["credit", "debit", "pix", "cash"]
CardBrand = Literal["visa", "mastercard", "elo", "amex", "hipercard", "diners", "discover", "other"]


class PaymentFeeConfig(BaseModel):
    """Taxa cobrada por forma de pagamento (e bandeira, quando cartão)."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    store_id: str = "default"
    payment_method: PaymentMethod
    card_brand: Optional[CardBrand] = None

    fee_percentage: float = Field(..., ge=0, le=100, description="% (ex: 2.5 = 2.5%)")
    fee_fixed: float = Field(..., ge=0, description="Valor fixo por transação")

    # Parcelamento (apenas crédito)
    max_installments: Optional[int] = Field(None, ge=1, le=12)
    installment_fee_percentage: Optional[float] = Field(None, ge=0, le=100, description="Taxa adicional por parcela")

    active: bool = True


class FeeCalculation(BaseModel):
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    payment_method: PaymentMethod
    card_brand: Optional[CardBrand] = None
    installments: int = Field(1, ge=1, le=12)


class FeeCalculationResult(BaseModel):
    gross_amount: float
    fee_percentage_amount: float
    fee_fixed_amount: float
    installment_fee_amount: float
    total_fee: float
    net_amount: float
    installment_value: Optional[float] = None
