from sqlalchemy import Column, Date, Integer

from marketplace.data.database import Base


class OrderSequenceModel(Base):
    #jeden wiersz na dzien, last_value podbijany atomowo przy kazdym zamowieniu
    __tablename__ = "order_sequences"

    day = Column(Date, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
