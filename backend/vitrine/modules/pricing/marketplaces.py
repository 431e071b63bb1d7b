# vitrine/modules/pricing/marketplaces.py

import math
from typing import List, Optional

from pydantic import BaseModel, Field


class MarketplaceFeeSchedule(BaseModel):
    commission: float = Field(..., ge=0, le=100, description="% de comissão sobre a venda")
    payment_fee: float = Field(..., ge=0, le=100, description="% da taxa de pagamento")
    fixed_fee: Optional[float] = Field(None, ge=0, description="Taxa fixa por venda")


class MarketplaceCategories(BaseModel):
    fashion: bool
    electronics: bool
    home: bool


class Marketplace(BaseModel):
    id: str
    display_name: str
    url: str
    fees: MarketplaceFeeSchedule
    categories: MarketplaceCategories
    popularity_rank: int = Field(..., ge=1, description="1 = mais popular")
    active: bool = True


class FinalPrice(BaseModel):
    base_price: float
    commission: float
    payment_fee: float
    fixed_fee: float
    total_fees: float
    net_profit: float
    profit_margin: float


class MarketplaceComparison(FinalPrice):
    marketplace: str
    id: str


def _marketplace(id: str, display_name: str, url: str, commission: float, payment_fee: float,
                 rank: int, fixed_fee: Optional[float] = None, fashion: bool = True,
                 electronics: bool = True, home: bool = True, active: bool = True) -> Marketplace:
    return Marketplace(
        id=id,
        display_name=display_name,
        url=url,
        fees=MarketplaceFeeSchedule(commission=commission, payment_fee=payment_fee, fixed_fee=fixed_fee),
        categories=MarketplaceCategories(fashion=fashion, electronics=electronics, home=home),
        popularity_rank=rank,
        active=active,
    )


# Taxas para a categoria moda
BRAZILIAN_MARKETPLACES: List[Marketplace] = [
    _marketplace("mercadolivre", "Mercado Livre", "https://mercadolivre.com.br", 16, 4.49, 1, fixed_fee=5.00),
    _marketplace("shopee", "Shopee", "https://shopee.com.br", 15, 3.99, 2),
    _marketplace("amazon", "Amazon", "https://amazon.com.br", 17, 0, 3, fixed_fee=2.00),  # pagamento incluso na comissão
    _marketplace("magalu", "Magazine Luiza", "https://magazineluiza.com.br", 18, 4.00, 4),
    _marketplace("americanas", "Americanas", "https://americanas.com.br", 17.5, 3.99, 5),
    _marketplace("casasbahia", "Casas Bahia", "https://casasbahia.com.br", 17, 4.00, 6),
    _marketplace("carrefour", "Carrefour", "https://carrefour.com.br", 16.5, 3.5, 7, electronics=False),
    _marketplace("kabum", "KaBuM!", "https://kabum.com.br", 14, 3.0, 8, fashion=False, home=False, active=False),
    _marketplace("netshoes", "Netshoes", "https://netshoes.com.br", 20, 4.5, 9, electronics=False, home=False),
    _marketplace("dafiti", "Dafiti", "https://dafiti.com.br", 25, 0, 10, electronics=False, home=False),
    _marketplace("centauro", "Centauro", "https://centauro.com.br", 22, 4.0, 11, electronics=False, home=False),
    _marketplace("zattini", "Zattini", "https://zattini.com.br", 23, 0, 12, electronics=False, home=False),
    _marketplace("shein", "Shein", "https://br.shein.com", 10, 5.0, 13, electronics=False, home=False),
]

_BY_ID = {m.id: m for m in BRAZILIAN_MARKETPLACES}

# Descontos de atacado por quantidade mínima de peças
WHOLESALE_TIERS = ((12, 0.25), (6, 0.15))


def get_marketplace(marketplace_id: str) -> Optional[Marketplace]:
    return _BY_ID.get(marketplace_id)


def calculate_final_price(base_price: float, marketplace_id: str) -> FinalPrice:
    """
    Calcula o lucro líquido de uma venda no marketplace.
    Marketplace desconhecido não cobra nada: lucro = preço base, margem 100%.
    """
    marketplace = get_marketplace(marketplace_id)
    if marketplace is None:
        return FinalPrice(
            base_price=base_price,
            commission=0,
            payment_fee=0,
            fixed_fee=0,
            total_fees=0,
            net_profit=base_price,
            profit_margin=100,
        )

    commission = base_price * marketplace.fees.commission / 100
    payment_fee = base_price * marketplace.fees.payment_fee / 100
    fixed_fee = marketplace.fees.fixed_fee or 0
    total_fees = commission + payment_fee + fixed_fee
    net_profit = base_price - total_fees
    profit_margin = net_profit / base_price * 100 if base_price else 0

    return FinalPrice(
        base_price=base_price,
        commission=commission,
        payment_fee=payment_fee,
        fixed_fee=fixed_fee,
        total_fees=total_fees,
        net_profit=net_profit,
        profit_margin=profit_margin,
    )


def get_active_fashion_marketplaces() -> List[Marketplace]:
    return [m for m in BRAZILIAN_MARKETPLACES if m.active and m.categories.fashion]


def compare_marketplace_fees(base_price: float) -> List[MarketplaceComparison]:
    """Marketplaces de moda ativos, do maior para o menor lucro líquido."""
    comparison = [
        MarketplaceComparison(
            marketplace=m.display_name,
            id=m.id,
            **calculate_final_price(base_price, m.id).model_dump(),
        )
        for m in get_active_fashion_marketplaces()
    ]
    return sorted(comparison, key=lambda item: item.net_profit, reverse=True)


def calculate_wholesale_price(base_price: float, quantity: int) -> int:
    discount = 0.0
    for min_quantity, tier_discount in WHOLESALE_TIERS:
        if quantity >= min_quantity:
            discount = tier_discount
            break
    return math.floor(base_price * (1 - discount))
