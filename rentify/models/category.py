from rentify.extensions import db


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    slug = db.Column(db.String(120), unique=True, nullable=False)

    items = db.relationship("Item", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category id={self.id} slug={self.slug}>"
